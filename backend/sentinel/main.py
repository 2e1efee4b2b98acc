import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from fastapi.middleware.cors import CORSMiddleware

from sentinel.api.v1 import students, attendance, capture, dashboard, assistant
from sentinel.core.config import Settings, settings as default_settings
from sentinel.core.logging import configure_logging
from sentinel.db import repository
from sentinel.db.session import build_engine, build_sessionmaker, create_tables
from sentinel.services.classroom import Classroom

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level)

    # ---------------------------
    # STARTUP / SHUTDOWN
    # ---------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings.database_url, echo=settings.db_echo)
        app.state.engine = engine
        app.state.sessionmaker = build_sessionmaker(engine)
        await create_tables(engine)

        async with app.state.sessionmaker() as db:
            roster = await repository.load_students(db)
            if not roster and settings.seed_sample_students:
                roster = await repository.seed_students(db)
            history = await repository.load_records(db)
        classroom = Classroom.from_settings(settings, students=roster, records=history)

        # mirror only records created from here on
        mirror = repository.RecordMirror(app.state.sessionmaker)
        classroom.store.subscribe(mirror)
        app.state.classroom = classroom
        logger.info("loaded %d students and %d records; detection source: %s",
                    len(classroom.roster), len(classroom.store), settings.detection_source)

        try:
            yield
        finally:
            await classroom.capture.stop_session()
            await mirror.drain()
            await engine.dispose()

    app = FastAPI(title="SmartClass Sentinel API", lifespan=lifespan)

    # ---------------------------
    # CORS (quick dev-friendly)
    # ---------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------
    # INCLUDE ROUTERS
    # ---------------------------
    app.include_router(students.router)
    app.include_router(attendance.router)
    app.include_router(capture.router)       # session control + camera agent events
    app.include_router(dashboard.router)
    app.include_router(assistant.router)

    # ---------------------------
    # HEALTH CHECK
    # ---------------------------
    @app.get("/health")
    async def health():
        client = app.state.classroom.assistant
        return {
            "status": "ok",
            "assistant": "configured" if client.configured else "missing",
            "assistant_reachable": client.reachable,
        }

    # ---------------------------
    # CLICKABLE HOME PAGE
    # ---------------------------
    @app.get("/", include_in_schema=False, response_class=HTMLResponse)
    async def home():
        return """
        <html>
            <head>
                <title>SmartClass Sentinel API</title>
            </head>
            <body style="font-family:Arial; padding:40px;">
                <h1>SmartClass Sentinel</h1>
                <p>Welcome! Choose a section:</p>
                <ul style="font-size:18px; line-height:1.8;">
                    <li><a href="/docs">Swagger API Documentation</a></li>
                    <li><a href="/health">Health Check</a></li>
                    <li><a href="/api/v1/students/">Students (roster)</a></li>
                    <li><a href="/api/v1/capture/status">Capture Session Status</a></li>
                    <li><a href="/api/v1/attendance/records">Attendance Records</a></li>
                    <li><a href="/api/v1/attendance/report">Today's Report</a></li>
                    <li><a href="/api/v1/dashboard/analytics">Insights &amp; Recommendations</a></li>
                </ul>
            </body>
        </html>
        """

    return app


app = create_app()
