from .config import settings
from .extensions import db

__version__ = settings.APP_VERSION

__all__ = ["db", "settings", "__version__"]
