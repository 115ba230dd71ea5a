import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger
from .paths import expand_abs, find_project_root, var_dir

log = get_logger("config")

DEFAULT_DB_FOLDER = "billease"
DEFAULT_DB_FILENAME = "catalog.sqlite3"
DEFAULT_CURRENCY_SYMBOL = "₹"
DEFAULT_STORE_NAME = "BillEase"


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Running the CLI from a subdirectory (e.g. `src/`) still finds the
    project-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest .env into a mapping without touching os.environ."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        values = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    env = {k: v.strip() for k, v in values.items() if v is not None}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(key: str, env: Dict[str, str]) -> Optional[str]:
    v = os.environ.get(key)
    if v and v.strip():
        return v.strip()
    v = env.get(key)
    return v if v else None


@dataclass(frozen=True)
class Settings:
    root_dir: str
    db_path: str
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL
    store_name: str = DEFAULT_STORE_NAME
    whatsapp_number: Optional[str] = None


def default_db_path(root_dir: str) -> str:
    return os.path.join(var_dir(root_dir), DEFAULT_DB_FOLDER, DEFAULT_DB_FILENAME)


def load_settings(root_dir: Optional[str] = None) -> Settings:
    """Build settings from the environment, then .env, then defaults.

    Recognised keys: BILLEASE_DB_PATH, BILLEASE_CURRENCY_SYMBOL,
    BILLEASE_STORE_NAME, BILLEASE_WHATSAPP_NUMBER.
    """
    root = find_project_root(root_dir)
    env = _read_dotenv(root)

    db_path = _lookup("BILLEASE_DB_PATH", env)
    if db_path:
        expanded = os.path.expanduser(os.path.expandvars(db_path))
        if not os.path.isabs(expanded):
            expanded = os.path.join(root, expanded)
        db_path = expand_abs(expanded)
    else:
        db_path = default_db_path(root)

    settings = Settings(
        root_dir=root,
        db_path=db_path,
        currency_symbol=_lookup("BILLEASE_CURRENCY_SYMBOL", env) or DEFAULT_CURRENCY_SYMBOL,
        store_name=_lookup("BILLEASE_STORE_NAME", env) or DEFAULT_STORE_NAME,
        whatsapp_number=_lookup("BILLEASE_WHATSAPP_NUMBER", env),
    )
    log.debug(f"Settings resolved: db_path={settings.db_path}, currency={settings.currency_symbol!r}")
    return settings
