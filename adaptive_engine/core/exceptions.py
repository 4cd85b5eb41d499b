"""
Engine error types.

None of these escape an adaptation cycle: the worst outcome of any failure is
that no adaptation is applied.
"""


class AdaptiveEngineError(Exception):
    """Base class for engine errors"""


class AdaptationExecutionError(AdaptiveEngineError):
    """An adaptation could not be applied"""


class SnapshotError(AdaptiveEngineError):
    """A persisted snapshot could not be restored"""
