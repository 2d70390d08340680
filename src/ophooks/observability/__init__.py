"""Metrics delivery for ophooks.

Modules
-------
sink        MetricDatum model, MetricsSink protocol, CloudWatch and in-memory sinks
"""
