from .metrics import MetricsCollector, PipelineMetrics

__all__ = ["MetricsCollector", "PipelineMetrics"]
