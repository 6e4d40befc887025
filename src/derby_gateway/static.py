"""Static file serving with single-page-app fallback."""

import logging
from pathlib import Path
from typing import Union

from fastapi.responses import FileResponse, PlainTextResponse, Response

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


class StaticFileHandler:
    """Serves files below one directory; unknown paths get ``index.html``."""

    def __init__(self, static_dir: Union[str, Path]) -> None:
        self.static_dir = Path(static_dir).resolve()
        logger.info("Static file handler initialized for directory: %s", self.static_dir)

    def resolve_path(self, request_path: str) -> Path:
        """Map a URL path onto the static directory (may point outside it)."""
        relative = request_path.lstrip("/")
        return (self.static_dir / relative).resolve()

    def is_within_root(self, path: Path) -> bool:
        """Return True when ``path`` is the static directory or below it."""
        return path == self.static_dir or self.static_dir in path.parents

    def serve(self, request_path: str) -> Response:
        """Return the file response for ``request_path``."""
        path = self.resolve_path(request_path)
        if not self.is_within_root(path):
            logger.warning("Rejected static path outside root: %s", request_path)
            return PlainTextResponse("Forbidden", status_code=403)

        if path.is_file():
            return FileResponse(path)

        # Directories and unknown paths fall back to client-side routing.
        index = self.static_dir / INDEX_FILE
        if index.is_file():
            return FileResponse(index)
        return PlainTextResponse("Not Found", status_code=404)
