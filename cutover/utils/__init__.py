"""
Utility modules for checkpoint table provisioning
"""

from .checkpoint_table import (
    CheckpointTableError,
    CheckpointTableName,
    build_connection_string,
    create_checkpoint_tables,
    get_checkpoint_engine,
    parse_checkpoint_table,
)
