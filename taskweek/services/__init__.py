"""Column resolution, normalization, aggregation, anomaly detection and export."""
