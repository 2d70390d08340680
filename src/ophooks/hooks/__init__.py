"""Built-in subscribers.

Modules
-------
console     register_console_subscriber -- logs every event
metrics     MetricSubscriber -- per-operation call counts flushed to CloudWatch
"""
