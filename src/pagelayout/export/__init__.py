from .csv_export import (
    _bbox_str,
    _safe_str,
    export_blocks_csv,
    export_page_summary_csv,
    export_tables_csv,
)
from .overlay import KIND_COLORS, draw_overlay
from .page_data import deserialize_page, serialize_page
