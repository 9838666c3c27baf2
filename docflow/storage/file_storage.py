import uuid
from pathlib import Path

import httpx

from docflow.errors import SourceUnavailableError
from docflow.logging.logger import Log

LOCAL_SCHEME = "local:"
HTTP_SCHEMES = ("http://", "https://")


def file_extension(file_name: str) -> str:
    """Lower-case extension without the dot, or '' when there is none."""
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def document_file_path(files_root: Path, project_id: str, key: str) -> Path:
    """Build path to a stored document: {files_root}/{project_id}/{key}"""
    return files_root / project_id / key


class DocumentStorage:
    """Stores uploaded bytes and loads them back from a source reference.

    References are either ``local:{project_id}/{key}`` for files written by
    save(), or an ``http(s)://`` URL for imported records.
    """

    FILES_ROOT = Path("/app/files")

    def __init__(
        self,
        files_root: Path | None = None,
        http_client: httpx.Client | None = None,
        download_timeout_seconds: int = 30,
    ) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._http_client = http_client
        self._download_timeout = download_timeout_seconds

    def save(self, project_id: str, file_name: str, content: bytes) -> str:
        """Write bytes under the project directory and return their reference."""
        ext = file_extension(file_name)
        key = f"{uuid.uuid4()}.{ext}" if ext else str(uuid.uuid4())
        path = document_file_path(self._files_root, project_id, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as exc:
            raise SourceUnavailableError(f"Failed to store {file_name}: {exc}") from exc
        Log.debug(f"Stored {len(content)} bytes for {file_name} at {path}")
        return f"{LOCAL_SCHEME}{project_id}/{key}"

    def load(self, reference: str) -> bytes:
        """Read the bytes behind a source reference.

        Raises:
            SourceUnavailableError: if the reference is unsupported or unreadable.
        """
        if reference.startswith(LOCAL_SCHEME):
            return self._load_local(reference[len(LOCAL_SCHEME):])
        if reference.startswith(HTTP_SCHEMES):
            return self._download(reference)
        raise SourceUnavailableError(f"Unsupported source reference '{reference}'")

    def _load_local(self, relative: str) -> bytes:
        root = self._files_root.resolve()
        path = (root / relative).resolve()
        if not path.is_relative_to(root):
            raise SourceUnavailableError(f"Source reference escapes storage root: {relative}")
        if not path.exists():
            raise SourceUnavailableError(f"Stored file not found: {relative}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise SourceUnavailableError(f"Failed to read stored file {relative}: {exc}") from exc

    def _download(self, url: str) -> bytes:
        try:
            if self._http_client is not None:
                response = self._http_client.get(url, timeout=self._download_timeout)
            else:
                response = httpx.get(
                    url, timeout=self._download_timeout, follow_redirects=True
                )
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(f"Failed to download {url}: {exc}") from exc
        if response.status_code >= 400:
            raise SourceUnavailableError(
                f"Failed to fetch file: HTTP {response.status_code} for {url}"
            )
        return response.content
