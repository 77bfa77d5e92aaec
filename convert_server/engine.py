# convert_server/engine.py
import time
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional

from convert_server.catalog import ToolConfig


class ConversionError(Exception):
    """A conversion that could not produce output; the message is shown to the client."""


class ConversionEngine(ABC):
    @abstractmethod
    def convert(self, tool: ToolConfig, input_path: Path, output_path: Path, options: Optional[dict] = None) -> None:
        """Read ``input_path`` and write the result to ``output_path``."""


class PlaceholderEngine(ConversionEngine):
    """Writes a text report in place of a real conversion.

    Stands in for format converters so the job lifecycle can run end to end.
    ``delay_seconds`` simulates processing time.
    """

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds

    def convert(self, tool: ToolConfig, input_path: Path, output_path: Path, options: Optional[dict] = None) -> None:
        if not input_path.is_file():
            raise ConversionError("Input file is no longer available")
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

        input_size = input_path.stat().st_size
        lines = [
            f"Converted with {tool.name}",
            f"Tool: {tool.type.value}",
            f"Input: {input_path.name} ({input_size} bytes)",
            f"Output format: {output_path.suffix.lstrip('.') or 'none'}",
            f"Options: {options or {}}",
            f"Processed at: {datetime.utcnow().isoformat()}Z",
        ]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
