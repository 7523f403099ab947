"""Static asset stage.

GET and HEAD requests for an existing file under the public directory are
answered here and never reach the stages behind this one (body parsing,
sanitization, sessions, ...). Every other request passes through.
"""

import stat
from pathlib import Path

import anyio.to_thread
from starlette.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send

from src.api.constants import STATIC_METHODS


class StaticAssetsMiddleware:
    """Serve files from ``directory`` in front of the application.

    Lookups go through ``StaticFiles.lookup_path``, which refuses paths that
    resolve outside the directory.

    Args:
        app: The ASGI application to wrap.
        directory: The public assets directory. It may be absent, in which
            case every request passes through.
    """

    def __init__(self, app: ASGIApp, *, directory: Path) -> None:
        self.app = app
        self.directory = Path(directory)
        self.files = StaticFiles(directory=self.directory, check_dir=False)

    async def _is_asset(self, scope: Scope) -> bool:
        path = self.files.get_path(scope)
        _, stat_result = await anyio.to_thread.run_sync(self.files.lookup_path, path)
        return stat_result is not None and stat.S_ISREG(stat_result.st_mode)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] == "http"
            and scope["method"] in STATIC_METHODS
            and await self._is_asset(scope)
        ):
            await self.files(scope, receive, send)
            return
        await self.app(scope, receive, send)
