import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from karmic_dice import storage
from karmic_dice.batch import RollContext
from karmic_dice.dice import FaceTables
from karmic_dice.engine import KarmicEngine
from karmic_dice.routes import router
from karmic_dice.routes.settings import apply_log_level

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

logger = logging.getLogger(__name__)


def create_engine(face_tables_path: Path | None = None) -> KarmicEngine:
    """Engine reading live settings and per-user state from storage."""
    tables = FaceTables.from_json(face_tables_path) if face_tables_path else FaceTables()
    engine = KarmicEngine(
        settings=storage.get_settings,
        face_tables=tables,
        state_loader=storage.load_state,
        state_users=storage.list_state_users,
    )

    def _persist(ctx: RollContext) -> None:
        if engine.settings.persist_history:
            storage.schedule_save(ctx.user_id, engine.export_state(ctx.user_id))

    engine.add_commit_listener(_persist)
    return engine


def create_app(data_dir: Path | None = None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    storage.init_storage(resolved)

    apply_log_level(storage.get_settings())

    face_tables = os.getenv("FACE_TABLES", "")
    engine = create_engine(Path(face_tables) if face_tables else None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # write any debounced state before the process exits
        storage.flush_state()

    app = FastAPI(title="Karmic Dice", lifespan=lifespan)
    app.state.engine = engine
    app.include_router(router, prefix="/api")
    logger.info("Karmic dice ready (data dir %s)", resolved)
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
