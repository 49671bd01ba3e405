from pathlib import Path
from typing import Any

from pydantic import ValidationError

from segskip.config import settings
from segskip.logging import get_logger
from segskip.models.schemas import SkipOptions

log = get_logger(__name__)


class OptionsStore:
    """
    Synchronous key-value access to the skip options.
    Values are validated on every write; with a path, each write is saved.
    """

    def __init__(self, path: str | Path | None = None, options: SkipOptions | None = None):
        if path is None and settings.options_path:
            path = settings.options_path
        self.path = Path(path).expanduser() if path else None
        self._options = options or self._load()

    def _load(self) -> SkipOptions:
        if self.path is None or not self.path.exists():
            return SkipOptions()
        try:
            return SkipOptions.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            log.warning("options.load_failed", path=str(self.path), error=str(e))
            return SkipOptions()

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self._options.model_dump_json(indent=2), encoding="utf-8")

    @property
    def options(self) -> SkipOptions:
        return self._options

    def get(self, key: str) -> Any:
        if key not in SkipOptions.model_fields:
            raise KeyError(key)
        return getattr(self._options, key)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def get_all(self) -> dict[str, Any]:
        return self._options.model_dump()

    def update(self, values: dict[str, Any]) -> SkipOptions:
        """Apply several values at once; nothing changes if any is invalid."""
        unknown = set(values) - set(SkipOptions.model_fields)
        if unknown:
            raise KeyError(", ".join(sorted(unknown)))

        merged = {**self._options.model_dump(), **values}
        # ValidationError is a ValueError
        self._options = SkipOptions.model_validate(merged)
        self._save()
        log.info("options.updated", keys=sorted(values))
        return self._options

    def reset_to_defaults(self) -> SkipOptions:
        self._options = SkipOptions()
        self._save()
        return self._options
