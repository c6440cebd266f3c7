"""
YAML configuration for the prayer times service: defaults, .env loading,
environment substitution and hot reload of the file through watchdog.
"""
import copy
import logging
import os
import re
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import yaml
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

_ENV_LINE = re.compile(r'^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*)$')
_ENV_REF = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')
_BARE_ENV_REF = re.compile(r'^\$([A-Za-z_][A-Za-z0-9_]*)$')


def _diff(old: Dict, new: Dict, path: str = "") -> Iterator[Tuple[str, str, Any, Any]]:
    """Yield (kind, dotted key, old value, new value) for every leaf that differs."""
    for key in sorted(set(old) | set(new), key=str):
        dotted = f"{path}.{key}" if path else str(key)
        if key not in new:
            yield "removed", dotted, old[key], None
        elif key not in old:
            yield "added", dotted, None, new[key]
        elif isinstance(old[key], dict) and isinstance(new[key], dict):
            yield from _diff(old[key], new[key], dotted)
        elif old[key] != new[key]:
            yield "changed", dotted, old[key], new[key]


def _merge(defaults: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
    """Defaults overlaid with the file's values, one level of sections deep."""
    merged = copy.deepcopy(defaults)
    for key, value in data.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


class ConfigChangeHandler(FileSystemEventHandler):
    """Reloads the config when its file is written or atomically replaced."""

    def __init__(self, config: "Config", cooldown: float = 1.0):
        self.config = config
        self.cooldown = cooldown  # seconds
        self.last_reload = 0.0

    def on_modified(self, event: FileSystemEvent) -> None:
        self._maybe_reload(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._maybe_reload(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._maybe_reload(event.dest_path)

    def _maybe_reload(self, path: str) -> None:
        if Path(path).resolve() != self.config.config_file:
            return
        now = time.time()
        if now - self.last_reload < self.cooldown:
            return
        self.last_reload = now
        try:
            self.config.reload()
        except Exception as e:
            logging.error(f"Error handling config change: {e}")


class Config:
    """
    Loaded config.yaml. data always holds every default section; values from
    the file override them key by key.
    """

    def __init__(self, config_path: Optional[str] = None, watch: bool = True):
        self.change_callbacks: List[Callable[[Dict[str, Any]], None]] = []
        self._reload_lock = threading.Lock()
        self.observer: Optional[Observer] = None

        self.config_file = Path(config_path or Path.cwd() / "config.yaml").resolve()
        self.config_dir = self.config_file.parent
        logging.debug(f"Using config file: {self.config_file}")

        self._load_env_file()
        self._ensure_config_exists()
        self.data: Dict[str, Any] = self._get_default_config()
        self._load_config()

        if watch:
            self._start_watching()

    def _start_watching(self) -> None:
        self.observer = Observer()
        self.observer.schedule(ConfigChangeHandler(self), str(self.config_dir), recursive=False)
        self.observer.start()
        logging.info(f"Watching {self.config_dir} for config changes")

    def register_change_callback(self, callback: Callable[[Dict[str, Any]], None]) -> None:
        """Register a callback to be called with the new data after each reload"""
        self.change_callbacks.append(callback)

    def reload(self) -> None:
        """Re-read the file and notify listeners. Overlapping reloads are skipped."""
        if not self._reload_lock.acquire(blocking=False):
            return
        try:
            logging.info("Config file change detected - reloading configuration")
            # editors may still be writing
            time.sleep(0.1)

            previous = copy.deepcopy(self.data)
            if not self._load_config():
                return
            self._log_config_changes(previous, self.data)

            for callback in list(self.change_callbacks):
                try:
                    callback(self.data)
                except Exception as e:
                    logging.exception(f"Error in config change callback: {e}")
        finally:
            self._reload_lock.release()

    def _log_config_changes(self, old_config: Dict, new_config: Dict) -> None:
        changes = list(_diff(old_config, new_config))
        if not changes:
            logging.info("Config reloaded, no changes")
            return
        for kind, key, old, new in changes:
            if kind == "changed":
                logging.info(f"Config changed: {key}: {old} -> {new}")
            elif kind == "added":
                logging.info(f"Config added: {key}: {new}")
            else:
                logging.info(f"Config removed: {key}: {old}")

    def cleanup(self) -> None:
        """Stop the file observer"""
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None

    def _get_default_config(self) -> Dict[str, Any]:
        return {
            "location": {
                "latitude": -37.8443,
                "longitude": 144.8836,
                "elevation": 10,
                "timezone": "Australia/Melbourne",
            },
            "calculation": {
                "fajr_angle": 18.0,
                "isha_angle": 18.0,
                "isha_minutes": None,  # set to use Maghrib + minutes instead of the angle
                "asr_factor": 1,  # 1 = Shafi'i/standard, 2 = Hanafi
                "dhuhr_margin_minutes": 2,
                "fallback_angle": None,
            },
            "prayer_settings": {},  # local CMS snapshot, used until one is published to the API
            "refresh": {
                "next_prayer_interval": 60,  # seconds
                "reference": "athan",
            },
            "api": {
                "enabled": False,
                "host": "127.0.0.1",
                "port": 8765,
            },
            "database": {
                "path": str(self.config_dir / "masjid.db"),
            },
            "logging": {
                "level": "INFO",
                "file": str(self.config_dir / "masjid.log"),
            },
        }

    def _ensure_config_exists(self) -> None:
        """Write the default config when there is no file yet"""
        if self.config_file.exists():
            return
        self.config_dir.mkdir(parents=True, exist_ok=True)
        logging.info(f"Creating default config file: {self.config_file}")
        self.config_file.write_text(yaml.safe_dump(self._get_default_config(), sort_keys=False))

    def _find_env_file(self) -> Optional[Path]:
        for candidate in (self.config_dir / ".env", self.config_dir.parent / ".env", Path.cwd() / ".env"):
            if candidate.is_file():
                return candidate
        return None

    def _load_env_file(self) -> None:
        """Export KEY=VALUE pairs from the nearest .env; variables already set win"""
        env_file = self._find_env_file()
        if env_file is None:
            logging.debug("No .env file found")
            return

        logging.info(f"Loading environment variables from: {env_file}")
        try:
            lines = env_file.read_text().splitlines()
        except OSError as e:
            logging.warning(f"Could not read {env_file}: {e}")
            return

        for line in lines:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            match = _ENV_LINE.match(line)
            if not match:
                logging.debug(f"Skipping malformed .env line in {env_file}")
                continue
            key, value = match.groups()
            os.environ.setdefault(key, value.strip().strip('"').strip("'"))

    def _substitute_env_vars(self, data: Any) -> Any:
        """Replace ${VAR} anywhere in a string, or a whole-string $VAR; unknown names stay as written"""
        if isinstance(data, dict):
            return {key: self._substitute_env_vars(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self._substitute_env_vars(item) for item in data]
        if not isinstance(data, str):
            return data

        bare = _BARE_ENV_REF.match(data)
        if bare:
            return os.environ.get(bare.group(1), data)
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(0)), data)

    def _load_config(self) -> bool:
        """Load the file over the defaults. Returns False and keeps the current data on error."""
        try:
            with open(self.config_file) as f:
                loaded = yaml.safe_load(f)
            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ValueError("Invalid config format: root must be a mapping")
        except (OSError, yaml.YAMLError, ValueError) as e:
            logging.error(f"Error loading config {self.config_file}: {e}; keeping current configuration")
            return False

        data = _merge(self._get_default_config(), self._substitute_env_vars(loaded))
        logging_section = data.get("logging")
        if isinstance(logging_section, dict) and logging_section.get("file"):
            logging_section["file"] = os.path.expanduser(str(logging_section["file"]))
        self.data = data
        logging.debug(f"Loaded config from {self.config_file}")
        return True

    def get_section(self, name: str) -> Dict[str, Any]:
        """Get a top-level config section, empty dict if missing or not a mapping"""
        section = self.data.get(name)
        return section if isinstance(section, dict) else {}
