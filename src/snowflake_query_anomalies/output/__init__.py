"""
Delivery of detection results.
"""

from .sinks import ConsoleSink, FileSink, ResultSink, create_sink, findings_to_dataframe

__all__ = [
    'ConsoleSink',
    'FileSink',
    'ResultSink',
    'create_sink',
    'findings_to_dataframe',
]
