from ecotrace.observability.sinks.jsonl_sink import JsonlSink

__all__ = ["JsonlSink"]
