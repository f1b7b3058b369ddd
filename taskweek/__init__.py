"""Weekly task reports from work-item exports."""

__version__ = "0.1.0"
