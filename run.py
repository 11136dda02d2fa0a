import logging

import uvicorn

from backup_console.config import settings
from backup_console.main import app

if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="127.0.0.1", port=8000, log_level=settings.LOG_LEVEL.lower())
