from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Optional
import dotenv
import yaml

from errors import StartupConfigError
from logger import logger
from utils import Endpoint, parse_endpoint

ROOT = Path(__file__).parent.parent

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off', '')


def parse_bool(key: str, value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise StartupConfigError(f"{key} must be a boolean, got {value!r}")


class Env:
    def __init__(self):
        dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))
        if self.contains("ENV"):
            if not dotenv.load_dotenv(f".env.{self.type}"):
                raise StartupConfigError(f"No .env.{self.type} file found")

    def get(self, key: str, default=None):
        return os.getenv(key, default)

    def contains(self, key: str):
        return self.get(key) is not None

    def get_bool(self, key: str, default=None):
        return parse_bool(key, self.get(key, default))

    def __contains__(self, key: str) -> bool:
        return self.contains(key)

    def __getitem__(self, key: str):
        return self.get(key)

    @property
    def type(self):
        return self.get('ENV') or "default"

defaults = {
    "v6_only": False,
    "debug": False,
    "probe_interval": 0.1,
}

class CFG:
    def __init__(self, path: str | Path) -> None:
        self.file = Path(path)
        self.cfg = {}
        if self.file.exists():
            self.load()

    def load(self):
        try:
            with open(self.file, "r", encoding="utf-8") as f:
                cfg = yaml.load(f.read(), Loader=yaml.FullLoader) or {}
        except (OSError, yaml.YAMLError) as e:
            raise StartupConfigError(f"Cannot load {self.file}: {e}") from e
        if not isinstance(cfg, dict):
            raise StartupConfigError(f"{self.file} must contain a mapping, got {type(cfg).__name__}")
        self.cfg = cfg

    def get_bool(self, key: str) -> Optional[bool]:
        return parse_bool(key, self.get(key))

    def get(self, key: str, def_: Any = None) -> Any:
        value = self._get_value(self.cfg, key.split("."))
        if value is None:
            if def_ is not None:
                return def_
            if key in defaults:
                return defaults[key]
            logger.debug(f"[Config] {key} is not set")
        return value

    def _get_value(self, dict_obj, keys):
        for key in keys:
            if isinstance(dict_obj, dict) and key in dict_obj:
                dict_obj = dict_obj[key]
            else:
                return None
        return dict_obj


@dataclass(frozen=True)
class Settings:
    listen: Endpoint
    target: Endpoint
    v6_only: bool = False
    debug: bool = False
    probe_interval: float = 0.1


def config_path() -> Path:
    return Path(os.getenv("IPFW_CONFIG") or ROOT / "config.yml")


def load_settings(
    listen: Optional[str] = None,
    target: Optional[str] = None,
    v6_only: Optional[bool] = None,
    debug: Optional[bool] = None,
    *,
    environ: Optional[Env] = None,
    cfg: Optional[CFG] = None,
) -> Settings:
    """
    Resolve the forwarder settings.

    Explicit arguments win over ``IPFW_*`` environment variables, which win
    over ``config.yml``. Addresses are parsed here so that a bad address
    fails before anything is started.
    """
    environ = environ or Env()
    cfg = cfg or CFG(config_path())

    listen = _pick(listen, environ.get("IPFW_LISTEN"), cfg.get("listen"))
    target = _pick(target, environ.get("IPFW_TARGET"), cfg.get("target"))
    if listen is None:
        raise StartupConfigError("listen address is not set")
    if target is None:
        raise StartupConfigError("target address is not set")

    listen_endpoint = parse_endpoint(str(listen))
    target_endpoint = parse_endpoint(str(target))

    v6_only = bool(_pick(v6_only, environ.get_bool("IPFW_V6_ONLY"), cfg.get_bool("v6_only")))
    if v6_only and not listen_endpoint.ipv6:
        raise StartupConfigError(f"--v6-only needs an IPv6 listen address, got {listen_endpoint}")

    try:
        probe_interval = float(cfg.get("probe_interval"))
    except (TypeError, ValueError):
        raise StartupConfigError(f"invalid probe_interval {cfg.get('probe_interval')!r}")
    if probe_interval <= 0:
        raise StartupConfigError(f"probe_interval must be positive, got {probe_interval}")

    return Settings(
        listen=listen_endpoint,
        target=target_endpoint,
        v6_only=v6_only,
        debug=bool(_pick(debug, environ.get_bool("IPFW_DEBUG"), cfg.get_bool("debug"))),
        probe_interval=probe_interval,
    )


def _pick(*values):
    for value in values:
        if value is not None:
            return value
    return None


__all__ = ['config_path', 'parse_bool', 'Env', 'CFG', 'Settings', 'load_settings']
