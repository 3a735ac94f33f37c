"""Exception hierarchy for probing, planning, and engine failures."""
from typing import List, Optional


class MediaFitError(Exception):
    """Base class for all mediafit errors."""


class MissingDuration(MediaFitError):
    def __init__(self, path: str = ""):
        super().__init__(f"Could not determine media duration{f' for {path}' if path else ''}.")
        self.path = path


class MissingResolution(MediaFitError):
    def __init__(self, path: str = ""):
        super().__init__(f"Could not determine video resolution{f' for {path}' if path else ''}.")
        self.path = path


class TargetTooSmall(MediaFitError):
    def __init__(self, target_bytes: int, audio_bits: float):
        super().__init__(
            f"Target size {target_bytes} bytes is too small even for audio alone "
            f"({int(audio_bits)} bits needed)."
        )
        self.target_bytes = target_bytes
        self.audio_bits = audio_bits


class MountConflict(MediaFitError):
    def __init__(self, mounted: str, requested: str):
        super().__init__(f"Cannot mount {requested}: {mounted} is still mounted.")
        self.mounted = mounted
        self.requested = requested


class EngineError(MediaFitError):
    """An engine invocation failed to launch or exited non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr_tail: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr_tail = stderr_tail


class EncodeFailed(EngineError):
    """One pass of a two-pass encode failed."""

    def __init__(self, pass_number: int, cause: EngineError):
        super().__init__(f"Pass {pass_number}/2 failed: {cause}", cause.returncode, cause.stderr_tail)
        self.pass_number = pass_number


class SplitAborted(EngineError):
    """Splitting stopped on an engine failure; `chunks` holds what was produced before it."""

    def __init__(self, chunks: List, cause: EngineError):
        super().__init__(f"Splitting aborted after {len(chunks)} chunk(s): {cause}",
                         cause.returncode, cause.stderr_tail)
        self.chunks = chunks
