from pathlib import Path


class FileSystemSource:
    """Local file access for file upload sources, optionally confined to a base dir."""

    def __init__(self, base_path: str | None = None):
        self.base_path = Path(base_path).resolve() if base_path else None

    def _resolve(self, path: str) -> Path | None:
        target = Path(path)
        if self.base_path is None:
            return target.resolve()
        # Prevent traversal
        target = (self.base_path / path).resolve()
        if not target.is_relative_to(self.base_path):
            return None
        return target

    def exists(self, path: str) -> bool:
        """True if a regular file exists at path."""
        target = self._resolve(path)
        return target is not None and target.is_file()

