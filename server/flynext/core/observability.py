"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "flynext-api"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
FLIGHT_BOOKINGS_CREATED = Counter(
    'flight_bookings_created_total',
    'Total flight bookings created',
    ['legs', 'principal'],
    registry=REGISTRY
)

FLIGHT_SEATS_SOLD = Counter(
    'flight_seats_sold_total',
    'Total seats decremented from flight inventory',
    registry=REGISTRY
)

HOTEL_BOOKINGS_CREATED = Counter(
    'hotel_bookings_created_total',
    'Total hotel bookings created',
    ['status'],
    registry=REGISTRY
)

HOTEL_NIGHTS_BOOKED = Counter(
    'hotel_room_nights_booked_total',
    'Total room nights booked',
    registry=REGISTRY
)

BOOKINGS_CANCELLED = Counter(
    'bookings_cancelled_total',
    'Total bookings cancelled',
    ['kind'],
    registry=REGISTRY
)

BOOKING_REJECTIONS = Counter(
    'booking_rejections_total',
    'Booking requests rejected by validation or availability checks',
    ['kind', 'reason'],
    registry=REGISTRY
)

ITINERARIES_CREATED = Counter(
    'itineraries_created_total',
    'Total itineraries created',
    ['components'],
    registry=REGISTRY
)

AFS_REQUESTS = Counter(
    'afs_requests_total',
    'Requests made to the Advanced Flights System',
    ['endpoint', 'outcome'],
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing():
    """Setup OpenTelemetry tracing."""
    provider = TracerProvider(resource=_resource())

    if settings.otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint))
        )

    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics():
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000,
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument the SQLAlchemy engine with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for request and business metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_flight_booking(legs: int, principal: str):
        """Record a confirmed flight booking and the seats it consumed."""
        FLIGHT_BOOKINGS_CREATED.labels(legs=str(legs), principal=principal).inc()
        FLIGHT_SEATS_SOLD.inc(legs)

    @staticmethod
    def record_hotel_booking(status: str, nights: int):
        HOTEL_BOOKINGS_CREATED.labels(status=status).inc()
        if status == "CONFIRMED":
            HOTEL_NIGHTS_BOOKED.inc(nights)

    @staticmethod
    def record_cancellation(kind: str):
        BOOKINGS_CANCELLED.labels(kind=kind).inc()

    @staticmethod
    def record_rejection(kind: str, reason: str):
        BOOKING_REJECTIONS.labels(kind=kind, reason=reason).inc()

    @staticmethod
    def record_itinerary(components: str):
        ITINERARIES_CREATED.labels(components=components).inc()

    @staticmethod
    def record_afs_request(endpoint: str, outcome: str):
        AFS_REQUESTS.labels(endpoint=endpoint, outcome=outcome).inc()


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()


def get_logger(name: str):
    """Get a structlog logger bound to a component name."""
    return structlog.get_logger(name, component=name)
