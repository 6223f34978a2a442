# hairmatch/exceptions.py
"""Error taxonomy for the face-shape pipeline."""


class HairmatchError(Exception):
    """Base class for every error raised by hairmatch."""
    pass


class InvalidLandmarksError(HairmatchError):
    """Landmarks are structurally incomplete or geometrically degenerate."""
    pass


class NoFaceDetectedError(HairmatchError):
    """The landmark provider found no face in the image."""
    pass


class ModelLoadError(HairmatchError):
    """The landmark detector could not be loaded."""
    pass


class ModelNotLoadedError(HairmatchError):
    """Detection was requested before the detector was loaded."""
    pass


class ConfigurationError(HairmatchError):
    """A tunable is out of range."""
    pass
