"""
FFmpeg engine session.

An Engine owns one scratch workspace directory, runs FFmpeg invocations inside
it one at a time, and fans every diagnostic line of the running invocation out
to the currently subscribed callbacks. Output artifacts are addressed by their
name relative to the workspace. Only one source file may be mounted at a time.
"""
import shutil
import subprocess
import tempfile
from collections import deque
from functools import lru_cache
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from mediafit.errors import EngineError, MountConflict
from mediafit.utils import logger, LogLevel
from mediafit.utils.constants import FFMPEG_BINARY
from mediafit.utils.system_util import find_binary

LineCallback = Callable[[str], None]

_STDERR_TAIL_LINES = 20


def output_ref(name: str) -> str:
    """
    Command-line reference to the workspace artifact `name`.

    The `./` prefix keeps names that start with `-` from being read as options
    and names containing `:` from being read as a protocol.
    """
    return f"./{name}"


class Engine:
    """A loaded FFmpeg binary plus its workspace and mount slot."""

    def __init__(self, binary: str = FFMPEG_BINARY, workspace: Optional[Path] = None):
        self.binary = binary
        self._requested_workspace = workspace
        self.workspace: Optional[Path] = None
        self._binary_path: Optional[str] = None
        self._owns_workspace = False
        self._listeners: List[LineCallback] = []
        self._mounted: Optional[Path] = None

    @property
    def loaded(self) -> bool:
        return self._binary_path is not None and self.workspace is not None

    def load(self) -> "Engine":
        """Resolve the binary and create the workspace. Safe to call repeatedly."""
        if self.loaded:
            return self

        binary_path = find_binary(self.binary)
        if binary_path is None:
            raise EngineError(f"'{self.binary}' not found on PATH")

        if self._requested_workspace is not None:
            self._requested_workspace.mkdir(parents=True, exist_ok=True)
            self.workspace = self._requested_workspace
        else:
            self.workspace = Path(tempfile.mkdtemp(prefix="mediafit-"))
            self._owns_workspace = True
        self._binary_path = binary_path

        logger.log("engine.loaded", LogLevel.DEBUG, binary=binary_path, workspace=str(self.workspace))
        return self

    def close(self) -> None:
        """Unmount and drop the workspace if this session created it."""
        self.unmount()
        if self._owns_workspace and self.workspace is not None:
            shutil.rmtree(self.workspace, ignore_errors=True)
        self.workspace = None
        self._binary_path = None
        self._owns_workspace = False

    # Diagnostic line subscription

    def on_line(self, callback: LineCallback) -> None:
        self._listeners.append(callback)

    def off_line(self, callback: LineCallback) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _dispatch(self, line: str) -> None:
        for callback in list(self._listeners):
            callback(line)

    # Invocation

    def exec(self, args: Sequence[str]) -> None:
        """
        Run one FFmpeg invocation and block until it exits.

        Every stderr line is delivered to the subscribed callbacks as it
        arrives. Progress lines terminated by a bare carriage return count as
        lines too.

        Raises:
            EngineError: the process could not start or exited non-zero.
        """
        self.load()
        cmd = [self._binary_path, "-hide_banner", "-nostdin", "-y", *args]
        logger.log("engine.exec", LogLevel.DEBUG, cmd=" ".join(cmd))

        try:
            process = subprocess.Popen(
                cmd,
                cwd=str(self.workspace),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise EngineError(f"Could not start {self.binary}: {e}") from e

        tail = deque(maxlen=_STDERR_TAIL_LINES)
        try:
            for raw in process.stderr:
                line = raw.rstrip("\n")
                if not line:
                    continue
                tail.append(line)
                logger.log("engine.line", LogLevel.TRACE, line=line)
                self._dispatch(line)
        finally:
            process.stderr.close()
            code = process.wait()

        if code != 0:
            stderr_tail = "\n".join(tail)
            logger.log("engine.failed", LogLevel.DEBUG, exit_code=code, error=stderr_tail[-200:])
            raise EngineError(f"{self.binary} exited with code {code}", code, stderr_tail)

    # Mount slot

    @property
    def mounted(self) -> Optional[Path]:
        return self._mounted

    def mount(self, source: Path) -> str:
        """Attach `source` and return the path reference to pass to exec()."""
        source = Path(source).expanduser().resolve()
        if self._mounted is not None:
            raise MountConflict(str(self._mounted), str(source))
        if not source.is_file():
            raise FileNotFoundError(str(source))
        self._mounted = source
        logger.log("engine.mount", LogLevel.DEBUG, file=source.name)
        return str(source)

    def unmount(self) -> None:
        """Detach the mounted source. Never raises."""
        if self._mounted is not None:
            logger.log("engine.unmount", LogLevel.DEBUG, file=self._mounted.name)
        self._mounted = None

    # Workspace artifacts

    def _artifact_path(self, name: str) -> Path:
        self.load()
        return self.workspace / name

    def read_artifact(self, name: str) -> bytes:
        return self._artifact_path(name).read_bytes()

    def delete_artifact(self, name: str) -> None:
        self._artifact_path(name).unlink()

    def has_artifact(self, name: str) -> bool:
        return self._artifact_path(name).exists()


@lru_cache(maxsize=1)
def load_engine(binary: str = FFMPEG_BINARY) -> Engine:
    """Return the process-wide engine session, loading it on first use."""
    return Engine(binary).load()
