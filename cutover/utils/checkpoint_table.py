"""
GoldenGate checkpoint table provisioning via direct SQL

Equivalent to AdminClient ``ADD CHECKPOINTTABLE <schema.table>``: creates the
main checkpoint table and its auxiliary ``_LOX`` table. Existing tables are
left alone (ORA-00955 counts as success).
"""

import glob
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote_plus

import oracledb
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

logger = logging.getLogger(__name__)

# ORA-00955: name is already used by an existing object
ORA_NAME_ALREADY_USED = 955

# Native network encryption requires thick mode
THICK_MODE_REQUIRED = 'DPY-3001'

ORACLE_CLIENT_LIB_PATTERNS = [
    '/usr/lib/oracle/*/client64/lib',
    '/opt/oracle/instantclient*',
    '/u01/app/oracle/product/*/db_*/lib',
]


class CheckpointTableError(Exception):
    """Raised when the checkpoint database cannot be reached"""
    pass


@dataclass(frozen=True)
class CheckpointTableName:
    schema: str
    table: str

    @property
    def qualified(self) -> str:
        return f"{self.schema}.{self.table}"

    @property
    def lox(self) -> 'CheckpointTableName':
        return CheckpointTableName(self.schema, f"{self.table}_LOX")


def parse_checkpoint_table(checkpoint_table: str, username: str) -> CheckpointTableName:
    """Split SCHEMA.TABLE; without a schema the table lives in the user's schema"""
    if '.' in checkpoint_table:
        schema, table = checkpoint_table.split('.', 1)
    else:
        schema, table = username, checkpoint_table
    return CheckpointTableName(schema, table)


def main_table_ddl(name: CheckpointTableName) -> str:
    # Matches the GG 23.x ADD CHECKPOINTTABLE layout (LOG_CMPLT_XIDS, LOG_BSN, LOG_XID)
    return f"""
    CREATE TABLE {name.qualified} (
        GROUP_NAME      VARCHAR2(8)    NOT NULL,
        GROUP_KEY       NUMBER(19)     NOT NULL,
        SEQNO           NUMBER(10),
        RBA             NUMBER(19)     NOT NULL,
        AUDIT_TS        VARCHAR2(29),
        CREATE_TS       DATE           NOT NULL,
        LAST_UPDATE_TS  DATE           NOT NULL,
        CURRENT_DIR     VARCHAR2(255)  NOT NULL,
        LOG_BSN         VARCHAR2(64),
        LOG_CSN         VARCHAR2(64),
        LOG_XID         VARCHAR2(255),
        LOG_CMPLT_CSN   VARCHAR2(64),
        LOG_CMPLT_XIDS  VARCHAR2(255),
        VERSION         VARCHAR2(64),
        PRIMARY KEY (GROUP_NAME, GROUP_KEY)
    )
    """


def lox_table_ddl(name: CheckpointTableName) -> str:
    return f"""
    CREATE TABLE {name.qualified} (
        GROUP_NAME      VARCHAR2(8)    NOT NULL,
        GROUP_KEY       NUMBER(19)     NOT NULL,
        LOG_CMPLT_CSN   VARCHAR2(64),
        LOG_CMPLT_XIDS  VARCHAR2(255),
        SEQUENCE        NUMBER(19)     NOT NULL,
        PRIMARY KEY (GROUP_NAME, GROUP_KEY, SEQUENCE)
    )
    """


def build_connection_string(host: str, port: int, service_name: str, username: str, password: str) -> str:
    """SQLAlchemy URL for python-oracledb, credentials URL-encoded"""
    return (
        f"oracle+oracledb://{quote_plus(username)}:{quote_plus(password)}"
        f"@{host}:{port}/?service_name={quote_plus(service_name)}"
    )


def get_oracle_lib_dir() -> Optional[str]:
    """Find Oracle Client libraries for thick mode"""
    oracle_home = os.environ.get('ORACLE_HOME', '')
    if oracle_home:
        lib_dir = os.path.join(oracle_home, 'lib')
        if os.path.exists(os.path.join(lib_dir, 'libclntsh.so')):
            return lib_dir

    for pattern in ORACLE_CLIENT_LIB_PATTERNS:
        for match in sorted(glob.glob(pattern), reverse=True):
            if os.path.exists(os.path.join(match, 'libclntsh.so')):
                return match

    return None


def get_checkpoint_engine(connection_string: str) -> Engine:
    """
    Connect in thin mode first, falling back to thick mode on DPY-3001.

    Returns:
        Engine: an engine whose connectivity has been verified

    Raises:
        CheckpointTableError: if neither mode can connect
    """
    engine = None
    try:
        engine = create_engine(connection_string)
        with engine.connect():
            pass
        logger.info("Connected (thin mode)")
        return engine
    except (SQLAlchemyError, oracledb.Error) as e:
        if engine is not None:
            engine.dispose()
        if THICK_MODE_REQUIRED not in str(e):
            raise CheckpointTableError(f"Connection failed: {e}") from e

    logger.info(f"NNE detected ({THICK_MODE_REQUIRED}). Switching to thick mode...")
    lib_dir = get_oracle_lib_dir()
    if lib_dir:
        logger.info(f"Using Oracle libraries from: {lib_dir}")
        thick_mode = {'lib_dir': lib_dir}
    else:
        logger.info("No Oracle lib dir found, trying system LD_LIBRARY_PATH...")
        thick_mode = True

    try:
        engine = create_engine(connection_string, thick_mode=thick_mode)
        with engine.connect():
            pass
    except (SQLAlchemyError, oracledb.Error) as e:
        raise CheckpointTableError(f"Connection failed: {e}") from e

    logger.info("Connected (thick mode)")
    return engine


def is_name_already_used(error: DBAPIError) -> bool:
    """True for ORA-00955 (object already exists)"""
    orig = getattr(error, 'orig', None)
    args = getattr(orig, 'args', ())
    if args and getattr(args[0], 'code', None) == ORA_NAME_ALREADY_USED:
        return True
    return 'ORA-00955' in str(error)


def create_checkpoint_tables(engine: Engine, name: CheckpointTableName) -> Tuple[bool, Dict[str, Optional[str]]]:
    """
    Create the checkpoint and LOX tables.

    Both tables are attempted even if the first fails.

    Args:
        engine: Connected engine
        name: Main checkpoint table name

    Returns:
        Tuple[bool, Dict[str, Optional[str]]]: (all_ready, {table: status or error})
            where status is 'created' or 'exists'
    """
    results: Dict[str, Optional[str]] = {}
    failures: List[str] = []

    for ddl, table in [(main_table_ddl(name), name), (lox_table_ddl(name.lox), name.lox)]:
        try:
            with engine.begin() as conn:
                conn.execute(text(ddl))
            results[table.qualified] = 'created'
            logger.info(f"Created {table.qualified}")
        except DBAPIError as e:
            if is_name_already_used(e):
                results[table.qualified] = 'exists'
                logger.info(f"{table.qualified} already exists")
            else:
                results[table.qualified] = str(e)
                failures.append(table.qualified)
                logger.error(f"Error creating {table.qualified}: {e}")

    return not failures, results
