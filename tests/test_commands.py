"""End-to-end runs of the management commands."""

from io import StringIO
from types import SimpleNamespace
from unittest import mock

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from sqlalchemy.exc import DatabaseError

from tests.conftest import EXTRACT_NAME, GG_URL, REPLICAT_NAME

ENV_VARS = ['GG_URL', 'GG_USER', 'GG_PASS', 'EXTRACT_NAME', 'REPLICAT_NAME']


@pytest.fixture
def fast_settings(gg_settings, tmp_path):
    gg_settings.GOLDENGATE_CONFIG = {
        **gg_settings.GOLDENGATE_CONFIG,
        'POLL_INTERVAL': 0,
        'WAIT_TIMEOUT': 0,
        'SETTLE_DELAY': 0,
        'LOG_DIR': str(tmp_path),
    }
    return gg_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def activate(*args, **options):
    out = StringIO()
    call_command('gg_activate_fallback', *args, stdout=out, **options)
    return out.getvalue()


def run_logs(path):
    return sorted(path.glob('gg_activate_fallback_*.log'))


class TestActivateFallback:

    def test_success_exits_zero_and_writes_run_log(self, fake_gg, fast_settings, clean_env, tmp_path):
        output = activate(GG_URL, 'oggadmin', 'Secret123!', EXTRACT_NAME, REPLICAT_NAME)

        assert 'SUCCESS: Fallback replication is ACTIVE.' in output
        assert f'Extract  {EXTRACT_NAME}:  running' in output

        logs = run_logs(tmp_path)
        assert len(logs) == 1
        content = logs[0].read_text()
        assert f'GG_URL: {GG_URL}' in content
        assert f'GET /services/v2/extracts/{EXTRACT_NAME} -> HTTP 200' in content
        assert f'PATCH /services/v2/replicats/{REPLICAT_NAME} -> HTTP 200' in content
        assert 'OGG-08100' in content
        assert 'Secret123!' not in content

    def test_request_details_stay_out_of_stdout(self, fake_gg, fast_settings, clean_env):
        output = activate(GG_URL, 'oggadmin', 'secret', EXTRACT_NAME, REPLICAT_NAME)

        assert '-> HTTP 200' not in output

    def test_arguments_from_environment(self, fake_gg, fast_settings, monkeypatch):
        for name, value in zip(ENV_VARS, [GG_URL + '/', 'oggadmin', 'secret', EXTRACT_NAME, REPLICAT_NAME]):
            monkeypatch.setenv(name, value)

        output = activate()

        assert 'SUCCESS' in output
        assert fake_gg.requests[0][1] == f'{GG_URL}/services/v2/extracts/{EXTRACT_NAME}'

    def test_missing_argument_prints_usage(self, fake_gg, fast_settings, clean_env, tmp_path):
        with pytest.raises(CommandError) as excinfo:
            activate(GG_URL, 'oggadmin', 'secret', EXTRACT_NAME)

        assert excinfo.value.returncode == 1
        assert 'Usage:' in str(excinfo.value)
        assert 'REPLICAT_NAME' in str(excinfo.value)
        assert fake_gg.calls == []
        assert run_logs(tmp_path) == []

    def test_process_not_found_exits_one(self, fake_gg, fast_settings, clean_env, tmp_path):
        with pytest.raises(CommandError) as excinfo:
            activate(GG_URL, 'oggadmin', 'secret', 'NOSUCH', REPLICAT_NAME)

        assert excinfo.value.returncode == 1
        assert 'Extract NOSUCH not found' in str(excinfo.value)
        assert fake_gg.mutating_calls() == []
        assert 'Extract NOSUCH not found' in run_logs(tmp_path)[0].read_text()

    def test_final_mismatch_exits_one_with_both_states(self, fake_gg, fast_settings, clean_env, tmp_path):
        fake_gg.stays_stopped.add(REPLICAT_NAME)
        out = StringIO()

        with pytest.raises(CommandError) as excinfo:
            call_command(
                'gg_activate_fallback', GG_URL, 'oggadmin', 'secret', EXTRACT_NAME, REPLICAT_NAME, stdout=out
            )

        assert excinfo.value.returncode == 1
        assert 'Extract running' in str(excinfo.value)
        assert 'Replicat stopped' in str(excinfo.value)
        output = out.getvalue()
        assert f'Replicat {REPLICAT_NAME}: stopped' in output
        assert str(run_logs(tmp_path)[0]) in output
        assert f'GG Deployment Console: {GG_URL}' in output

    def test_options_override_settings(self, fake_gg, fast_settings, clean_env, tmp_path):
        log_dir = tmp_path / 'runs'

        activate(
            GG_URL, 'oggadmin', 'secret', EXTRACT_NAME, REPLICAT_NAME,
            log_dir=str(log_dir), verify_tls=True, settle_delay=0, wait_timeout=0,
        )

        assert len(run_logs(log_dir)) == 1
        assert all(kwargs['verify'] is True for _, _, kwargs in fake_gg.requests)

    def test_rerun_is_safe(self, fake_gg, fast_settings, clean_env):
        activate(GG_URL, 'oggadmin', 'secret', EXTRACT_NAME, REPLICAT_NAME)
        output = activate(GG_URL, 'oggadmin', 'secret', EXTRACT_NAME, REPLICAT_NAME)

        assert 'SUCCESS' in output


class TestCreateCheckpoint:

    COMMAND = 'cutover.management.commands.gg_create_checkpoint'

    def invoke(self, *args):
        out, err = StringIO(), StringIO()
        call_command('gg_create_checkpoint', *args, stdout=out, stderr=err)
        return out.getvalue()

    def test_creates_both_tables(self):
        engine = mock.MagicMock()
        with mock.patch(f'{self.COMMAND}.get_checkpoint_engine', return_value=engine):
            output = self.invoke('db.example', '1521', 'ORCLPDB', 'ggadmin', 'pw', 'GGADMIN.CHKPT')

        assert 'OK: Created GGADMIN.CHKPT' in output
        assert 'OK: Created GGADMIN.CHKPT_LOX' in output
        assert 'Checkpoint table GGADMIN.CHKPT ready.' in output
        engine.dispose.assert_called_once()

    def test_existing_tables_are_success(self):
        engine = mock.MagicMock()
        engine.begin.return_value.__exit__.return_value = False
        exists = DatabaseError('CREATE TABLE', {}, Exception(SimpleNamespace(code=955)))
        engine.begin.return_value.__enter__.return_value.execute.side_effect = [exists, exists]

        with mock.patch(f'{self.COMMAND}.get_checkpoint_engine', return_value=engine):
            output = self.invoke('db.example', '1521', 'ORCLPDB', 'ggadmin', 'pw', 'CHKPT')

        assert 'OK: ggadmin.CHKPT already exists' in output
        assert 'OK: ggadmin.CHKPT_LOX already exists' in output

    def test_other_database_error_exits_one(self):
        engine = mock.MagicMock()
        engine.begin.return_value.__exit__.return_value = False
        denied = DatabaseError('CREATE TABLE', {}, Exception(SimpleNamespace(code=1031)))
        engine.begin.return_value.__enter__.return_value.execute.side_effect = [denied, None]

        with mock.patch(f'{self.COMMAND}.get_checkpoint_engine', return_value=engine):
            with pytest.raises(CommandError) as excinfo:
                self.invoke('db.example', '1521', 'ORCLPDB', 'ggadmin', 'pw', 'GGADMIN.CHKPT')

        assert excinfo.value.returncode == 1
        assert engine.begin.call_count == 2

    def test_connection_failure_exits_one(self):
        from cutover.utils import CheckpointTableError

        with mock.patch(
            f'{self.COMMAND}.get_checkpoint_engine',
            side_effect=CheckpointTableError('Connection failed: ORA-12541'),
        ):
            with pytest.raises(CommandError) as excinfo:
                self.invoke('db.example', '1521', 'ORCLPDB', 'ggadmin', 'pw', 'GGADMIN.CHKPT')

        assert excinfo.value.returncode == 1
        assert 'ORA-12541' in str(excinfo.value)
