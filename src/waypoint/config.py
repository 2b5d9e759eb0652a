"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass

from waypoint.static.files import DEFAULT_CHUNK_SIZE


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, static_chunk_size=16 * 1024)
    """

    # Render exception type and message in 5xx bodies
    debug: bool = False

    # Static files
    static_chunk_size: int = DEFAULT_CHUNK_SIZE

    # Content type for plain str/bytes handler results
    default_content_type: str = "text/html; charset=utf-8"

    # Content type for rendered HTTPError bodies
    error_content_type: str = "text/plain; charset=utf-8"

    def __post_init__(self) -> None:
        if self.static_chunk_size <= 0:
            msg = f"static_chunk_size must be positive, got {self.static_chunk_size}"
            raise ValueError(msg)
