"""
Django management command to create the GoldenGate checkpoint tables

Equivalent to AdminClient: ADD CHECKPOINTTABLE <schema.table>
Supports thin mode (no client) and thick mode (Oracle Client, needed for NNE).
"""

from django.core.management.base import BaseCommand, CommandError

from cutover.utils import (
    CheckpointTableError,
    build_connection_string,
    create_checkpoint_tables,
    get_checkpoint_engine,
    parse_checkpoint_table,
)


class Command(BaseCommand):
    help = 'Create the GoldenGate checkpoint table and its _LOX table (idempotent)'

    requires_system_checks = []

    def add_arguments(self, parser):
        parser.add_argument('host', type=str, help='Database host')
        parser.add_argument('port', type=int, help='Listener port')
        parser.add_argument('service_name', type=str, help='Database service name')
        parser.add_argument('user', type=str, help='Database user')
        parser.add_argument('password', type=str, help='Database password')
        parser.add_argument('checkpoint_table', type=str, help='[SCHEMA.]TABLE')

    def handle(self, *args, **options):
        name = parse_checkpoint_table(options['checkpoint_table'], options['user'])
        dsn = f"{options['host']}:{options['port']}/{options['service_name']}"
        self.stdout.write(f"Connecting to {dsn} as {options['user']}...")

        connection_string = build_connection_string(
            options['host'],
            options['port'],
            options['service_name'],
            options['user'],
            options['password'],
        )

        try:
            engine = get_checkpoint_engine(connection_string)
        except CheckpointTableError as e:
            raise CommandError(f"ERROR: {e}", returncode=1)

        try:
            ready, results = create_checkpoint_tables(engine, name)
        finally:
            engine.dispose()

        for table, status in results.items():
            if status == 'created':
                self.stdout.write(self.style.SUCCESS(f"OK: Created {table}"))
            elif status == 'exists':
                self.stdout.write(self.style.SUCCESS(f"OK: {table} already exists"))
            else:
                self.stderr.write(self.style.ERROR(f"ERROR creating {table}: {status}"))

        if not ready:
            raise CommandError(f"Checkpoint table {name.qualified} not ready.", returncode=1)

        self.stdout.write(self.style.SUCCESS(f"Checkpoint table {name.qualified} ready."))
