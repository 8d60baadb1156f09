import uvicorn
import os
from config import load_settings
from logging_config import setup_logging

# Setup logging before importing app
settings = load_settings()
setup_logging(log_level=settings.log_level, log_file=settings.log_file, log_format=settings.log_format)

from app import app
from logging_config import get_logger

logger = get_logger(__name__)

if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    logger.info(f"Starting room access server on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_config=None)
