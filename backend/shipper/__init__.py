from shipper.batcher import ClientBatcher
from shipper.logger import Logger, build_logger
from shipper.loop import BackgroundLoop
from shipper.projects import DuplicateProjectError, ProjectClient, resolve_project
from shipper.retry import RetryQueue
from shipper.tracing import Span, Tracer, build_tracer
from shipper.transports import (
    ConsoleLoggerTransport,
    HttpLoggerTransport,
    LoggerTransport,
    TraceTransport,
    TransportError,
    supports_bulk,
)

__all__ = [
    "BackgroundLoop",
    "ClientBatcher",
    "ConsoleLoggerTransport",
    "DuplicateProjectError",
    "HttpLoggerTransport",
    "Logger",
    "LoggerTransport",
    "ProjectClient",
    "RetryQueue",
    "Span",
    "TraceTransport",
    "Tracer",
    "TransportError",
    "build_logger",
    "build_tracer",
    "resolve_project",
    "supports_bulk",
]
