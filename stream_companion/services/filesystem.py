"""File system service for JSON record persistence."""

import json
from pathlib import Path
from typing import Any

import structlog

log = structlog.stdlib.get_logger()


class FileSystemService:
    """Service for file system operations with error handling and validation."""

    def __init__(self, base_path: Path | None = None) -> None:
        """Initialize the file system service.

        Args:
            base_path: Base directory for operations (defaults to current working directory)
        """
        self.base_path = base_path or Path.cwd()
        log.info("File system service initialized", base_path=str(self.base_path))

    def resolve(self, *parts: str) -> Path:
        """Build a path below the base directory."""
        return self.base_path.joinpath(*parts)

    async def save_json(self, data: dict[str, Any], path: Path) -> None:
        """Save data as JSON to the specified path.

        The file is written to a temporary sibling first and then moved into
        place, so readers never observe a partially written record.

        Raises:
            OSError: If file cannot be written
            ValueError: If data cannot be serialized to JSON
        """
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            self.ensure_directory(path.parent)

            log.debug("Saving JSON data", path=str(path))

            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)

            temp_path.replace(path)

            log.debug("JSON data saved", path=str(path))

        except OSError as e:
            log.error("Failed to save JSON data", path=str(path), error=str(e))
            self._discard(temp_path)
            raise
        except (TypeError, ValueError) as e:
            log.error("Failed to serialize data to JSON", path=str(path), error=str(e))
            self._discard(temp_path)
            raise ValueError(f"Cannot serialize data to JSON: {e}") from e

    async def load_json(self, path: Path) -> dict[str, Any]:
        """Load JSON data from the specified path.

        Raises:
            FileNotFoundError: If file does not exist
            OSError: If file cannot be read
            ValueError: If file contains invalid JSON or is not an object
        """
        try:
            log.debug("Loading JSON data", path=str(path))

            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")

            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)

            if not isinstance(data, dict):
                raise ValueError(f"Expected JSON object (dict), got {type(data).__name__}")

            return data

        except json.JSONDecodeError as e:
            log.error("Invalid JSON in file", path=str(path), error=str(e))
            raise ValueError(f"Invalid JSON in file {path}: {e}") from e
        except OSError as e:
            if not isinstance(e, FileNotFoundError):
                log.error("Failed to read JSON file", path=str(path), error=str(e))
            raise

    async def load_json_if_exists(self, path: Path) -> dict[str, Any] | None:
        """Like load_json, but a missing file yields None."""
        try:
            return await self.load_json(path)
        except FileNotFoundError:
            return None

    def ensure_directory(self, path: Path) -> None:
        """Ensure that a directory exists, creating it if necessary.

        Raises:
            OSError: If directory cannot be created
        """
        try:
            if path.exists():
                if not path.is_dir():
                    log.error("Path exists but is not a directory", path=str(path))
                    raise OSError(f"Path exists but is not a directory: {path}")
                return

            log.debug("Creating directory", path=str(path))
            path.mkdir(parents=True, exist_ok=True)

        except OSError as e:
            log.error("Failed to create directory", path=str(path), error=str(e))
            raise

    def _discard(self, path: Path) -> None:
        if path.exists():
            try:
                path.unlink()
            except OSError:
                log.warning("Failed to remove temporary file", path=str(path))
