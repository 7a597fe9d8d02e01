"""
Module 1 — Input Handler
Accepts configuration files or uploaded text, validates them and
returns immutable RawConfig objects tagged with a vendor dialect.
"""

import logging
import os
from typing import Dict, List, Optional, Tuple

from core.errors import InputError  # pyre-ignore
from core.models import RawConfig  # pyre-ignore
from core.parser_engine import get_grammar  # pyre-ignore
from core.vendor_detector import VendorDetector  # pyre-ignore


logger = logging.getLogger("netlens.input_handler")

AUTO = "auto"


class InputHandler:
    """Handles input validation, reading and vendor selection."""

    SUPPORTED_EXTENSIONS = {
        '.conf', '.cfg', '.config', '.txt', '.junos', '.eos', '.ios', '.log'
    }

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB limit

    def __init__(self, max_file_size: Optional[int] = None, detector: Optional[VendorDetector] = None):
        if max_file_size:
            self.MAX_FILE_SIZE = max_file_size
        self.detector = detector or VendorDetector()

    def from_text(self, text, file_name: str, vendor: Optional[str] = None) -> RawConfig:
        """
        Build a RawConfig from already-read text.

        Args:
            text: Raw configuration text (bytes are decoded as UTF-8).
            file_name: Name used in findings and error messages.
            vendor: Vendor dialect name, or None/"auto" to detect.

        Raises:
            InputError: If the text is empty, binary or the vendor is unknown.
        """
        if isinstance(text, bytes):
            try:
                text = text.decode('utf-8')
            except UnicodeDecodeError:
                raise InputError("file appears to be binary or uses unsupported encoding", file_name)

        if not isinstance(text, str) or not text.strip():
            raise InputError("configuration text is empty", file_name)
        if "\x00" in text:
            raise InputError("configuration appears to be binary", file_name)
        if len(text.encode('utf-8')) > self.MAX_FILE_SIZE:
            raise InputError(f"configuration exceeds maximum size ({self.MAX_FILE_SIZE} bytes)", file_name)

        vendor = self._resolve_vendor(text, file_name, vendor)
        return RawConfig(file_name=file_name, vendor=vendor, text=text)

    def load_file(self, file_path: str, vendor: Optional[str] = None) -> RawConfig:
        """
        Load and validate a configuration file.

        Raises:
            FileNotFoundError: If file does not exist.
            InputError: If file is empty, too large, binary or unreadable.
        """
        file_path = os.path.abspath(file_path)
        file_name = os.path.basename(file_path)

        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Configuration file not found: {file_path}")
        if not os.path.isfile(file_path):
            raise InputError("path is not a file", file_name)
        if not os.access(file_path, os.R_OK):
            raise InputError("file is not readable", file_name)

        file_size = os.path.getsize(file_path)
        if file_size == 0:
            raise InputError("configuration file is empty", file_name)
        if file_size > self.MAX_FILE_SIZE:
            raise InputError(f"file exceeds maximum size ({self.MAX_FILE_SIZE} bytes)", file_name)

        with open(file_path, 'rb') as f:
            content = f.read()

        return self.from_text(content, file_name, vendor)

    def load_directory(self, dir_path: str, vendor: Optional[str] = None) -> Tuple[List[RawConfig], List[Dict[str, str]]]:
        """
        Load all configuration files from a directory.

        Returns:
            (loaded RawConfigs, list of {"file", "error"} for rejected files)
        """
        dir_path = os.path.abspath(dir_path)

        if not os.path.isdir(dir_path):
            raise NotADirectoryError(f"Not a directory: {dir_path}")

        results = []
        errors = []

        for filename in sorted(os.listdir(dir_path)):
            file_path = os.path.join(dir_path, filename)
            if not os.path.isfile(file_path):
                continue

            _, ext = os.path.splitext(filename)
            if ext.lower() not in self.SUPPORTED_EXTENSIONS:
                continue

            try:
                results.append(self.load_file(file_path, vendor))
            except InputError as e:
                logger.warning(f"Skipping {filename}: {e.cause}")
                errors.append({"file": file_path, "error": e.cause})

        return results, errors

    def _resolve_vendor(self, text: str, file_name: str, vendor: Optional[str]) -> str:
        if vendor and vendor.lower() != AUTO:
            try:
                return get_grammar(vendor).name
            except InputError as e:
                raise InputError(e.cause, file_name)

        info = self.detector.detect(text, file_name)
        if info.vendor_name == "unknown":
            raise InputError("could not detect the configuration vendor", file_name)
        logger.info(f"{file_name}: detected {info.vendor_name} (confidence {info.confidence})")
        return info.vendor_name
