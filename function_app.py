"""Azure Functions entrypoint for the employee feed."""

import io
import logging
import sys
from pathlib import Path

import azure.functions as func

_root = Path(__file__).resolve().parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from scripts.keyvault_loader import load_env

app = func.FunctionApp()
logger = logging.getLogger(__name__)
_initialized = False
_settings = None


def _init() -> None:
    global _initialized, _settings
    if _initialized:
        return
    from feed import db as db_module
    from feed.config import FeedSettings

    load_env()
    # Raises ConfigurationError when SqlConnectionString, ServiceBusConnection or DefaultUserPassword is missing.
    settings = FeedSettings.from_env()
    engine = db_module.build_engine(settings.database_url, timeout=settings.sql_timeout)
    db_module.set_engine(engine)
    _settings = settings
    _initialized = True


@app.blob_trigger(arg_name="blob", path="uploads/{name}", connection="ExternalBlobStorageConnection")
def process_employee_feed(blob: func.InputStream) -> None:
    _init()
    from feed import db as db_module
    from feed.processor import process_employee_feed as run_feed

    name = (blob.name or "").rsplit("/", 1)[-1]
    run_feed(
        io.BytesIO(blob.read()),
        name,
        engine=db_module.get_engine(),
        settings=_settings,
    )
