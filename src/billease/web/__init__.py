from .app import SessionRegistry, create_app

__all__ = ["SessionRegistry", "create_app"]
