from gauge_autovoter.utils.formatters import (
    console,
    create_run_table,
    format_address,
    format_power,
    format_timestamp,
    generate_timestamped_filename,
    save_json_output,
)

__all__ = [
    "console",
    "create_run_table",
    "format_address",
    "format_power",
    "format_timestamp",
    "generate_timestamped_filename",
    "save_json_output",
]
