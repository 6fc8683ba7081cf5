"""Key-value settings persistence and the remembered app selection."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from core.app_store.config import settings


logger = logging.getLogger(__name__)

SELECTED_APP_ID_KEY = "selectedAppId"
SELECTED_APP_NAME_KEY = "selectedAppName"
SELECTED_COUNTRY_KEY = "selectedCountry"
SELECTED_LANGUAGE_KEY = "selectedLanguage"


class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def clear(self, key: str) -> None:
        ...


class MemorySettingsStore:
    """Dict backed store, used by tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self.clear(key)
            return
        self._values[key] = value

    def clear(self, key: str) -> None:
        self._values.pop(key, None)


class JsonSettingsStore:
    """Persist settings as a flat JSON object on disk."""

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path).expanduser() if path else settings.settings_path

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable settings file: %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, ensure_ascii=False)
            handle.write("\n")

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self.clear(key)
            return
        data = self._load()
        data[key] = value
        self._save(data)

    def clear(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


@dataclass(frozen=True)
class SelectedApp:
    app_id: int
    name: Optional[str] = None
    country: Optional[str] = None
    language: Optional[str] = None


def load_selected_app(store: SettingsStore) -> Optional[SelectedApp]:
    """Return the remembered app, or None when nothing usable is stored."""
    raw_id = store.get(SELECTED_APP_ID_KEY)
    try:
        app_id = int(raw_id) if raw_id is not None else 0
    except (TypeError, ValueError):
        app_id = 0
    # 0 means "unset", as with an absent integer default.
    if app_id <= 0:
        return None
    return SelectedApp(
        app_id=app_id,
        name=store.get(SELECTED_APP_NAME_KEY),
        country=store.get(SELECTED_COUNTRY_KEY),
        language=store.get(SELECTED_LANGUAGE_KEY),
    )


def save_selected_app(store: SettingsStore, app: SelectedApp) -> None:
    store.set(SELECTED_APP_ID_KEY, app.app_id)
    store.set(SELECTED_APP_NAME_KEY, app.name)
    store.set(SELECTED_COUNTRY_KEY, app.country)
    store.set(SELECTED_LANGUAGE_KEY, app.language)


def clear_selected_app(store: SettingsStore) -> None:
    for key in (SELECTED_APP_ID_KEY, SELECTED_APP_NAME_KEY, SELECTED_COUNTRY_KEY, SELECTED_LANGUAGE_KEY):
        store.clear(key)
