"""Pulse snapshot writer."""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from transit_pulse.logging import get_logger
from transit_pulse.models import PulseSnapshot

logger = get_logger(__name__)

TMP_SUFFIX = ".tmp"


class PulseWriter:
    """Writes the pulse snapshot as indented JSON.

    The snapshot goes to a sibling temp file that is then renamed over the
    output path, so readers see either the previous or the new file whole.
    """

    def __init__(self, output_file: Path) -> None:
        self.output_file = Path(output_file)

    def write(self, snapshot: PulseSnapshot) -> Path:
        """Persist ``snapshot``; raises OSError if the file cannot be written."""
        payload = snapshot.model_dump_json(by_alias=True, indent=2)

        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        # unique per write so concurrent runs never share a temp file
        tmp = self.output_file.with_name(
            f"{self.output_file.name}.{uuid.uuid4().hex[:8]}{TMP_SUFFIX}"
        )
        try:
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.output_file)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise

        logger.info(
            "Pulse snapshot written",
            path=str(self.output_file),
            routes=len(snapshot.routes),
            size_bytes=len(payload),
        )
        return self.output_file
