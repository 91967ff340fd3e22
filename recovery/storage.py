"""
Recovery Signer - Request Loading and Result Persistence
"""

import json
import logging
from pathlib import Path
from typing import Union

from .config import DEFAULT_RESULT_SUFFIX
from .exceptions import RequestError
from .request import RecoveryRequest, SignedRecovery


logger = logging.getLogger(__name__)


def load_request(path: Union[str, Path]) -> RecoveryRequest:
    """
    Load a recovery request file.

    Args:
        path: Path of the request JSON

    Returns:
        RecoveryRequest instance

    Raises:
        RequestError: If the file is missing, not JSON, or incomplete
    """
    path = Path(path)
    if not path.exists():
        raise RequestError(f"File not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise RequestError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise RequestError(f"Cannot read {path}: {e}")

    logger.debug(f"Loaded recovery request from {path}")
    return RecoveryRequest.from_dict(data)


class ResultWriter:
    """Writes signed recoveries next to their request files."""

    def __init__(self, suffix: str = DEFAULT_RESULT_SUFFIX):
        self.suffix = suffix
        self.logger = logging.getLogger(__name__)

    def path_for(self, request_path: Union[str, Path]) -> Path:
        """Request path with its last extension replaced by the suffix."""
        request_path = Path(request_path)
        return request_path.with_name(request_path.stem + self.suffix)

    def write(self, signed: SignedRecovery, path: Union[str, Path]) -> Path:
        """
        Write a signed recovery as indented JSON.

        The file is written to a temporary sibling first and renamed into
        place, so a failed write never leaves a partial result behind.

        Args:
            signed: Result to persist
            path: Destination file

        Returns:
            Path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_name(path.name + '.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(signed.to_dict(), f, indent=2)
            temp_file.replace(path)
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise
        self.logger.info(f"Wrote signed recovery to {path}")
        return path

