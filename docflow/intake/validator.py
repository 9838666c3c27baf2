from docflow.config.settings import Settings
from docflow.intake.models import FileDescriptor, ValidationOutcome

_MB = 1024 * 1024


def validate_file(
    file: FileDescriptor,
    allowed_mime_types: dict[str, str],
    max_size_bytes: int,
) -> ValidationOutcome:
    """Check a candidate file against the type and size policy.

    Pure: never raises and never touches the network.
    """
    if file.mime_type not in allowed_mime_types:
        allowed = ", ".join(ext.lstrip(".").upper() for ext in allowed_mime_types.values())
        return ValidationOutcome.rejected(
            f"File type {file.mime_type or 'unknown'} is not supported. Allowed types: {allowed}"
        )
    if file.size_bytes > max_size_bytes:
        return ValidationOutcome.rejected(
            f"File size {file.size_bytes / _MB:.1f}MB exceeds maximum of "
            f"{max_size_bytes / _MB:g}MB"
        )
    return ValidationOutcome.ok()


class FileValidator:
    """Validator bound to the configured intake policy."""

    def __init__(self, allowed_mime_types: dict[str, str], max_size_bytes: int) -> None:
        self._allowed_mime_types = dict(allowed_mime_types)
        self._max_size_bytes = max_size_bytes

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileValidator":
        return cls(settings.allowed_mime_types, settings.max_file_size_bytes)

    def validate(self, file: FileDescriptor) -> ValidationOutcome:
        return validate_file(file, self._allowed_mime_types, self._max_size_bytes)
