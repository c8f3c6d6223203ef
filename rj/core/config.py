import json
import os
import pathlib
from typing import Any, Dict, Mapping, Optional

from . import constants as C
from .models import Collections, Policy

DEFAULTS: Dict[str, Any] = {
    "firebase_db_url": "",
    "user_agent": "ReportJanitor/1.0",
    "timeout_s": C.STORE_TIMEOUT_S,
    "max_age_hours": C.MAX_AGE_HOURS,
    "merge_radius_km": C.MERGE_RADIUS_KM,
    "coord_precision": C.COORD_PRECISION,
    "collections": {},
    "log_dir": "logs",
}

# env var -> config key (the scheduled workflow passes credentials this way)
ENV_OVERRIDES = {
    "FIREBASE_DB_URL": "firebase_db_url",
    "FIREBASE_ACCESS_TOKEN": "access_token",
    "FIREBASE_AUTH": "auth",
}


def load_json(path: pathlib.Path, default: Any) -> Any:
    """Missing file -> default. Invalid JSON is a config error, not silently ignored."""
    if not path.exists():
        return default
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid JSON in {path}: {e}")


def load_config(
    cfg_path: pathlib.Path,
    secrets_path: Optional[pathlib.Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    cfg = dict(DEFAULTS)
    file_cfg = load_json(cfg_path, {})
    if not isinstance(file_cfg, dict):
        raise SystemExit(f"{cfg_path} must contain a JSON object")
    cfg.update(file_cfg)

    if secrets_path is not None:
        secrets = load_json(secrets_path, {})
        if not isinstance(secrets, dict):
            raise SystemExit(f"{secrets_path} must contain a JSON object")
        for k in ("access_token", "auth"):
            if secrets.get(k):
                cfg[k] = secrets[k]

    env = os.environ if env is None else env
    for var, key in ENV_OVERRIDES.items():
        if env.get(var):
            cfg[key] = env[var]

    if not str(cfg.get("firebase_db_url") or "").strip():
        raise SystemExit('Missing firebase_db_url (config.json or FIREBASE_DB_URL)')

    # Fail early on bad numbers rather than mid-run
    policy_from_config(cfg)
    return cfg


def policy_from_config(cfg: Dict[str, Any]) -> Policy:
    try:
        max_age_h = float(cfg.get("max_age_hours", C.MAX_AGE_HOURS))
        radius = float(cfg.get("merge_radius_km", C.MERGE_RADIUS_KM))
        precision = cfg.get("coord_precision", C.COORD_PRECISION)
        precision = None if precision is None else int(precision)
    except (TypeError, ValueError) as e:
        raise SystemExit(f"Invalid numeric config value: {e}")
    if max_age_h <= 0 or radius < 0:
        raise SystemExit("max_age_hours must be > 0 and merge_radius_km >= 0")
    return Policy(
        max_age_s=int(max_age_h * 3600),
        merge_radius_km=radius,
        coord_precision=precision,
    )


def collections_from_config(cfg: Dict[str, Any]) -> Collections:
    names = cfg.get("collections") or {}
    base = Collections()
    return Collections(
        live=str(names.get("live") or base.live),
        merged=str(names.get("merged") or base.merged),
        trash=str(names.get("trash") or base.trash),
        users=str(names.get("users") or base.users),
    )
