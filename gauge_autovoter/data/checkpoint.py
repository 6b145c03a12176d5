"""
Last-processed-epoch checkpoint.

Two stores share one interface: a local file, and a file in a GitHub
repository updated through the contents API. A missing checkpoint reads as
epoch 0, so a first run always proceeds.
"""

import base64
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Tuple

import httpx

from gauge_autovoter.shared.config import BotConfig
from gauge_autovoter.shared.constants import FeedConstants
from gauge_autovoter.shared.exceptions import FeedException, NonRetryableException
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.retry import HTTP_RETRY_CONFIG
from gauge_autovoter.shared.services.http_client import get_async_client

_logger = get_logger(__name__)


def _parse_epoch(text: str, source: str) -> int:
    text = text.strip()
    if not text:
        return 0
    try:
        return int(text)
    except ValueError:
        raise NonRetryableException(
            f"Checkpoint {source} does not hold an epoch: {text[:40]!r}"
        )


class CheckpointStore(ABC):
    """Read and write the last epoch the bot fully processed."""

    @abstractmethod
    async def read_last_epoch(self) -> int:
        ...

    @abstractmethod
    async def write_last_epoch(self, epoch: int) -> None:
        ...


class FileCheckpointStore(CheckpointStore):
    def __init__(self, path: str = FeedConstants.CHECKPOINT_PATH):
        self.path = Path(path)

    async def read_last_epoch(self) -> int:
        if not self.path.exists():
            _logger.info(f"No checkpoint at {self.path}, starting from 0")
            return 0
        return _parse_epoch(self.path.read_text(), str(self.path))

    async def write_last_epoch(self, epoch: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(epoch))
        _logger.info(f"Checkpoint {self.path} set to epoch {epoch}")


class GitHubCheckpointStore(CheckpointStore):
    """Checkpoint kept as a file in a GitHub repository."""

    def __init__(
        self,
        repository: str,
        token: str,
        path: str = FeedConstants.CHECKPOINT_PATH,
        branch: str = "main",
        client: Optional[httpx.AsyncClient] = None,
        api_base: str = FeedConstants.GITHUB_API_BASE,
    ):
        self.repository = repository
        self.path = path
        self.branch = branch
        self._token = token
        self._client = client or get_async_client()
        self._url = f"{api_base}/repos/{repository}/contents/{path}"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
        }

    async def _get(self) -> Tuple[Optional[str], Optional[str]]:
        """(content, sha) of the checkpoint file, (None, None) if absent."""
        try:
            response = await self._client.get(
                self._url, params={"ref": self.branch}, headers=self._headers()
            )
        except httpx.RequestError as e:
            raise FeedException(f"Failed to reach GitHub: {e}")

        if response.status_code == 404:
            return None, None
        if response.status_code != 200:
            raise FeedException(
                f"GitHub checkpoint read failed ({response.status_code}): "
                f"{response.text[:200]}"
            )
        body = response.json()
        content = base64.b64decode(body.get("content", "")).decode()
        return content, body.get("sha")

    async def _put(self, epoch: int) -> None:
        _, sha = await self._get()
        payload = {
            "message": f"Update {self.path} to epoch {epoch}",
            "content": base64.b64encode(str(epoch).encode()).decode(),
            "branch": self.branch,
        }
        if sha:
            payload["sha"] = sha

        try:
            response = await self._client.put(
                self._url, json=payload, headers=self._headers()
            )
        except httpx.RequestError as e:
            raise FeedException(f"Failed to reach GitHub: {e}")

        if response.status_code not in (200, 201):
            raise FeedException(
                f"GitHub checkpoint write failed ({response.status_code}): "
                f"{response.text[:200]}"
            )

    async def read_last_epoch(self) -> int:
        content, _ = await HTTP_RETRY_CONFIG.run(
            self._get, operation_name="checkpoint_read"
        )
        if content is None:
            _logger.info(
                f"No checkpoint in {self.repository}/{self.path}, starting from 0"
            )
            return 0
        return _parse_epoch(content, f"{self.repository}/{self.path}")

    async def write_last_epoch(self, epoch: int) -> None:
        await HTTP_RETRY_CONFIG.run(
            self._put, epoch, operation_name="checkpoint_write"
        )
        _logger.info(
            f"Checkpoint {self.repository}/{self.path} set to epoch {epoch}"
        )


def checkpoint_store_from_config(config: BotConfig) -> CheckpointStore:
    """GitHub store when a token and repository are configured, else a file."""
    if config.github_token and config.github_repository:
        return GitHubCheckpointStore(
            repository=config.github_repository,
            token=config.github_token,
            path=config.checkpoint_path,
            branch=config.github_branch,
        )
    return FileCheckpointStore(config.checkpoint_path)
