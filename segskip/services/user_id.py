import secrets
from pathlib import Path

from segskip.config import settings
from segskip.logging import get_logger

log = get_logger(__name__)


class UserIdStore:
    """
    Anonymous submitter id for the SponsorBlock API.
    Generated on first use and persisted so later submissions reuse it.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or settings.user_id_path).expanduser()
        self._user_id: str | None = None

    def get(self) -> str:
        if self._user_id:
            return self._user_id

        if self.path.exists():
            stored = self.path.read_text(encoding="utf-8").strip()
            if stored:
                self._user_id = stored
                return stored

        self._user_id = secrets.token_hex(16)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(self._user_id, encoding="utf-8")
        except OSError as e:
            # Still usable for this session
            log.warning("user_id.persist_failed", path=str(self.path), error=str(e))
        return self._user_id
