import asyncio
from datetime import timedelta
from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from staffing_api.booking.exceptions import BookingError
from staffing_api.booking.memory_store import InMemoryBookingStore
from staffing_api.booking.notifications import LogNotificationSink
from staffing_api.booking.notifications import NotificationDispatcher
from staffing_api.booking.project_service import ProjectService
from staffing_api.booking.state_machine import BookingStateMachine
from staffing_api.errors import STORE_UNAVAILABLE_ERRORS
from staffing_api.errors import handle_booking_errors
from staffing_api.errors import handle_broad_exceptions
from staffing_api.errors import handle_pydantic_validation_errors
from staffing_api.errors import handle_store_unavailable
from staffing_api.monitoring.logger import configure_logger
from staffing_api.monitoring.request_context import RequestContextMiddleware
from staffing_api.routes.routes_assignments import ROUTER_ASSIGNMENTS
from staffing_api.routes.routes_assignments import ROUTER_SEATS
from staffing_api.routes.routes_catalog import ROUTER_CATALOG
from staffing_api.routes.routes_health import ROUTER_HEALTH
from staffing_api.routes.routes_projects import ROUTER_PROJECTS
from staffing_api.settings import Settings


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded from environment variables (or a local .env file)
    via pydantic-settings. Without domain_db_connection_string the booking
    store is kept in process memory.
    """
    settings = settings or Settings()

    configure_logger(level=settings.log_level, log_file=settings.log_file)

    logger.info(
        "Configuration loaded successfully",
        domain_db_configured=bool(settings.domain_db_connection_string),
        notification_outbox=settings.enable_notification_outbox,
        offer_expiry=settings.enable_offer_expiry,
        log_level=settings.log_level,
    )

    app = FastAPI(
        title="Staffing Booking API",
        version="v1",
        description=dedent(
            """
        Books candidates onto project seats.

        | Resource | Notes |
        | --- | --- |
        | Projects | Create projects, add seats, owner actions (start, pause, resume, complete, archive, delete) |
        | Seats | Open search, preview eligible candidates, seat history |
        | Assignments | Offer, accept, decline, cancel, complete, reopen, requirement changes |

        Every mutating call needs the `X-Actor-Id` header (and optionally `X-Actor-Role`)
        set by the authentication gateway.
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    dispatcher = NotificationDispatcher([LogNotificationSink()])

    if settings.domain_db_connection_string:
        from staffing_api.booking.db.pool import DomainDBPool
        from staffing_api.booking.db.postgres_store import PostgresBookingStore

        domain_db_pool = DomainDBPool(
            settings.domain_db_connection_string,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
        app.state.domain_db_pool = domain_db_pool
        store = PostgresBookingStore(domain_db_pool)
        logger.info("Booking store: PostgreSQL")
    else:
        store = InMemoryBookingStore()
        logger.warning("domain_db_connection_string not set - booking data is kept in memory only")

    machine = BookingStateMachine(store, dispatcher=dispatcher)
    app.state.booking_store = store
    app.state.booking_machine = machine
    app.state.project_service = ProjectService(machine)
    app.state.notification_dispatcher = dispatcher

    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_CATALOG, prefix="/api")
    app.include_router(ROUTER_PROJECTS, prefix="/api")
    app.include_router(ROUTER_SEATS, prefix="/api")
    app.include_router(ROUTER_ASSIGNMENTS, prefix="/api")

    @app.on_event("startup")
    async def startup_booking():
        """Initialize the booking database and start background tasks."""
        if hasattr(app.state, "domain_db_pool"):
            await app.state.domain_db_pool.initialize()
            logger.success("Booking database initialized")

            if settings.enable_notification_outbox:
                from staffing_api.booking.db.repository_notification import NotificationRepository
                from staffing_api.booking.notifications import OutboxNotificationSink

                dispatcher.add_sink(OutboxNotificationSink(NotificationRepository(app.state.domain_db_pool.pool)))
                logger.success("Notification outbox enabled")
        elif settings.enable_notification_outbox:
            logger.warning("Notification outbox requires domain_db_connection_string - outbox disabled")

        if settings.enable_offer_expiry:
            from staffing_api.booking.expiry import start_offer_expiry_worker

            app.state.offer_expiry_task = asyncio.create_task(
                start_offer_expiry_worker(
                    machine,
                    max_age=timedelta(hours=settings.offer_expiry_hours),
                    interval_seconds=settings.offer_expiry_interval_seconds,
                )
            )
            logger.success("Offer expiry worker started")

    @app.on_event("shutdown")
    async def shutdown_booking():
        """Stop background tasks, flush notifications and close the store."""
        task = getattr(app.state, "offer_expiry_task", None)
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Offer expiry worker stopped")

        await dispatcher.drain()
        await store.close()
        logger.info("Booking store closed")

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=BookingError,
        handler=handle_booking_errors,
    )
    for error_class in STORE_UNAVAILABLE_ERRORS:
        app.add_exception_handler(exc_class_or_status_code=error_class, handler=handle_store_unavailable)

    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
