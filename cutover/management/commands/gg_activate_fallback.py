"""
Django management command to activate GoldenGate fallback replication

Post-cutover step: re-positions the Extract and the Replicat to the current
SCN and starts them. Run AFTER forward replication has been stopped.
"""

import os
from datetime import datetime, timezone

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from cutover.logging_utils import close_run_log, log_operation, open_run_log
from cutover.replication import CutoverOrchestrator
from ggfallback.utils.goldengate import (
    GoldenGateProcessManager,
    ProcessKind,
    ProcessNotFoundException,
    ReplicationUnit,
)

ARGUMENTS = [
    ('gg_url', 'GG_URL', 'GoldenGate deployment URL'),
    ('gg_user', 'GG_USER', 'Administration Service user'),
    ('gg_pass', 'GG_PASS', 'Administration Service password'),
    ('extract_name', 'EXTRACT_NAME', 'Extract to activate'),
    ('replicat_name', 'REPLICAT_NAME', 'Replicat to activate'),
]

USAGE = (
    "Usage: manage.py gg_activate_fallback <GG_URL> <GG_USER> <GG_PASS> <EXTRACT_NAME> <REPLICAT_NAME>\n"
    "\n"
    "Or set env vars: GG_URL, GG_USER, GG_PASS, EXTRACT_NAME, REPLICAT_NAME"
)


class Command(BaseCommand):
    help = 'Re-position GoldenGate Extract/Replicat to the current SCN and start them'

    requires_system_checks = []

    def add_arguments(self, parser):
        for dest, env_var, help_text in ARGUMENTS:
            parser.add_argument(
                dest,
                nargs='?',
                help=f'{help_text} (env: {env_var})',
            )
        parser.add_argument(
            '--log-dir',
            type=str,
            help='Directory for the run log (default: GOLDENGATE_CONFIG LOG_DIR)',
        )
        parser.add_argument(
            '--verify-tls',
            action='store_true',
            help='Verify the deployment TLS certificate',
        )
        parser.add_argument(
            '--wait-timeout',
            type=float,
            help='Seconds to wait for a status confirmation (default: 30)',
        )
        parser.add_argument(
            '--settle-delay',
            type=float,
            help='Fixed delay after stop/start, in seconds (default: 5)',
        )

    def handle(self, *args, **options):
        values = {
            dest: options.get(dest) or os.environ.get(env_var, '')
            for dest, env_var, _ in ARGUMENTS
        }
        if not all(values.values()):
            raise CommandError(USAGE, returncode=1)

        gg_config = getattr(settings, 'GOLDENGATE_CONFIG', {})
        gg_url = values['gg_url'].rstrip('/')
        log_dir = options.get('log_dir') or gg_config.get('LOG_DIR', '.')
        verify_tls = True if options.get('verify_tls') else None

        started_at = datetime.now(timezone.utc)
        run_logger, log_path = open_run_log(log_dir, started_at, stream=self.stdout)

        try:
            run_logger.info("=== GoldenGate Fallback Activation ===")
            run_logger.info(f"Timestamp: {started_at.strftime('%Y-%m-%dT%H:%M:%SZ')}")
            run_logger.info(f"GG_URL: {gg_url}")
            run_logger.info(f"Extract: {values['extract_name']}")
            run_logger.info(f"Replicat: {values['replicat_name']}")
            run_logger.info("")

            manager = GoldenGateProcessManager(
                gg_url,
                values['gg_user'],
                values['gg_pass'],
                logger=run_logger,
                verify_tls=verify_tls,
                wait_timeout=options.get('wait_timeout'),
            )
            orchestrator = CutoverOrchestrator(
                manager,
                ReplicationUnit(ProcessKind.EXTRACT, values['extract_name']),
                ReplicationUnit(ProcessKind.REPLICAT, values['replicat_name']),
                logger=run_logger,
                settle_delay=options.get('settle_delay'),
                wait_timeout=options.get('wait_timeout'),
            )

            try:
                with log_operation(run_logger, 'fallback_activation'):
                    result = orchestrator.run()
            except ProcessNotFoundException as e:
                raise CommandError(str(e), returncode=1)

            run_logger.info("")
            if result.success:
                run_logger.info("SUCCESS: Fallback replication is ACTIVE.")
                run_logger.info("  Extract captures from the target and writes to trail.")
                run_logger.info("  Replicat reads trail and applies to the original source.")
                return

            run_logger.warning("WARNING: One or more processes not running. Check logs:")
            run_logger.warning(f"  {log_path}")
            run_logger.warning(f"  GG Deployment Console: {gg_url}")
            raise CommandError(
                f"Fallback activation incomplete: Extract {result.extract_final.value}, "
                f"Replicat {result.replicat_final.value}",
                returncode=1,
            )
        finally:
            close_run_log(run_logger)
