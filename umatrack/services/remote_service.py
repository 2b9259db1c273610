from typing import List, Optional

import requests

from umatrack.core.errors import RemoteFetchError
from umatrack.core.models import Choice
from umatrack.core.table_parser import parse_choices_table
from umatrack.services.base_service import IRemoteService, IConfigService
from umatrack.logger import logger


class RemoteService(IRemoteService):
    """Fetches archive detail pages and turns their choice table into Choice records."""

    def __init__(self, config_service: IConfigService, session: Optional[requests.Session] = None):
        self.config = config_service
        self.session = session

    def initialize(self) -> bool:
        if self.session is None:
            self.session = requests.Session()
            self.session.headers["User-Agent"] = "umatrack/0.1"
        return True

    def shutdown(self) -> None:
        if self.session is not None:
            self.session.close()

    def archive_url(self, archive_id: str) -> str:
        base = self.config.get("archive_base_url", "").rstrip("/")
        return f"{base}/{archive_id}"

    def fetch(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.config.get("request_timeout"))
            response.raise_for_status()
        except requests.RequestException as e:
            raise RemoteFetchError(f"Failed to fetch {url}: {e}") from e
        return response.text

    def fetch_choices(self, archive_id: str) -> List[Choice]:
        url = self.archive_url(archive_id)
        logger.info(f"RemoteService: Fetching {url}")
        choices = parse_choices_table(self.fetch(url))
        if not choices:
            raise RemoteFetchError(f"No choices could be parsed from {url}")
        return choices
