from __future__ import annotations

import logging
import tomllib
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)


class ConfigValidationError(ValueError):
    """Raised when a LayoutConfig field has an invalid value."""


class ConfigLoadError(Exception):
    """Raised when a config file cannot be read or parsed."""


def _check_range(
    name: str, value: float, lo: float, hi: float, *, inclusive: bool = True
) -> None:
    if inclusive:
        if not (lo <= value <= hi):
            raise ConfigValidationError(f"{name}={value} out of range [{lo}, {hi}]")
    else:
        if not (lo < value < hi):
            raise ConfigValidationError(f"{name}={value} out of range ({lo}, {hi})")


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name}={value} must be > 0")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigValidationError(f"{name}={value} must be >= 0")


@dataclass
class LayoutConfig:
    """Tunables for page layout reconstruction.

    The defaults are policy constants tuned for typical PDF body text at
    display scale 1.0.  All lengths are in scaled page units.
    """

    # ── Line clustering ────────────────────────────────────────────────
    # Token y positions are quantised to the nearest multiple of this step.
    line_y_tolerance: float = 5.0

    # ── Block segmentation ─────────────────────────────────────────────
    # A new block starts when the line gap exceeds
    # max(block_gap_floor, line.avg_font_size * block_gap_font_mult).
    block_gap_floor: float = 20.0
    block_gap_font_mult: float = 1.5

    # ── Block classification ───────────────────────────────────────────
    # Single-line blocks with a larger average font are headers.
    header_min_font_size: float = 14.0
    # Table lines may differ from the first line by this many items.
    table_item_count_tol: int = 1
    # ... and by less than this much mean token spacing.
    table_spacing_tol: float = 5.0
    table_min_items: int = 2
    # Paragraph lines stay within this font-size band of the first line.
    paragraph_font_tol: float = 2.0
    # Paragraph lines must be longer than this many characters.
    paragraph_min_text_len: int = 20

    # ── Table grid extraction ──────────────────────────────────────────
    grid_row_tol: float = 5.0
    grid_min_row_items: int = 2
    grid_min_rows: int = 2
    grid_max_col_diff: int = 1
    # Sliding-window scan over the raw token sequence.
    enable_table_scan: bool = True
    scan_window_size: int = 40
    scan_window_step: int = 20

    # ── Token normalisation ────────────────────────────────────────────
    display_scale: float = 1.0

    # ── Embedded image OCR ─────────────────────────────────────────────
    enable_image_ocr: bool = False
    # DPI used to rasterise image crops before recognition.
    ocr_resolution: int = 200
    # Recognised lines below this confidence (0-1) are dropped.
    ocr_min_confidence: float = 0.5
    ocr_lang: str = "en"

    def __post_init__(self) -> None:
        """Validate field ranges to catch misconfiguration early."""
        _pos_floats = [
            "line_y_tolerance",
            "block_gap_font_mult",
            "header_min_font_size",
            "table_spacing_tol",
            "paragraph_font_tol",
            "grid_row_tol",
            "display_scale",
        ]
        for name in _pos_floats:
            _check_positive(name, getattr(self, name))

        _nn_floats = ["block_gap_floor"]
        for name in _nn_floats:
            _check_non_negative(name, getattr(self, name))

        _nn_ints = [
            "table_item_count_tol",
            "paragraph_min_text_len",
            "grid_max_col_diff",
        ]
        for name in _nn_ints:
            val = getattr(self, name)
            if val < 0:
                raise ConfigValidationError(f"{name}={val} must be >= 0")

        _pos_ints = [
            "table_min_items",
            "grid_min_row_items",
            "grid_min_rows",
            "scan_window_size",
            "scan_window_step",
            "ocr_resolution",
        ]
        for name in _pos_ints:
            val = getattr(self, name)
            if val < 1:
                raise ConfigValidationError(f"{name}={val} must be >= 1")

        _check_range("ocr_min_confidence", self.ocr_min_confidence, 0.0, 1.0)

        # Windows must overlap or touch, otherwise tokens fall between them.
        if self.scan_window_step > self.scan_window_size:
            raise ConfigValidationError(
                f"scan_window_step ({self.scan_window_step}) must be <= "
                f"scan_window_size ({self.scan_window_size})"
            )

    # ── Serialisation ──────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Return the public fields as a plain dict."""
        return {k: v for k, v in asdict(self).items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LayoutConfig":
        """Build a config from *data*, ignoring keys that are not fields."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            log.debug("Ignoring unknown config keys: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Path | str) -> "LayoutConfig":
        """Load a config from a YAML mapping."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigLoadError(f"Cannot read config {path}: {exc}") from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigLoadError(f"Invalid YAML in {path}: {exc}") from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Config {path} must contain a mapping, got {type(data).__name__}"
            )
        return cls.from_dict(data)

    @classmethod
    def from_toml(cls, path: Path | str) -> "LayoutConfig":
        """Load a config from TOML.

        Keys may live at the top level or under a ``[pagelayout]`` or
        ``[layout]`` table.
        """
        path = Path(path)
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except OSError as exc:
            raise ConfigLoadError(f"Cannot read config {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigLoadError(f"Invalid TOML in {path}: {exc}") from exc
        for section in ("pagelayout", "layout"):
            if isinstance(data.get(section), dict):
                data = data[section]
                break
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "LayoutConfig":
        """Load a config, choosing the parser from the file suffix."""
        path = Path(path)
        suffix = path.suffix.lower()
        if suffix in (".yaml", ".yml"):
            return cls.from_yaml(path)
        if suffix == ".toml":
            return cls.from_toml(path)
        raise ConfigLoadError(f"Unsupported config format {suffix!r}: {path}")
