"""
Unit tests for scheduler (dbdumper/scheduler.py).

Tests APScheduler configuration for --cron mode.
"""

from unittest.mock import MagicMock, patch

import pytest

from dbdumper import scheduler as scheduler_module


class TestSchedulerInitialization:
    """Test scheduler initialization."""

    def teardown_method(self):
        """Clean up after each test."""
        # Reset global scheduler
        scheduler_module.scheduler = None

    @patch('dbdumper.scheduler.BlockingScheduler')
    def test_init_scheduler(self, mock_scheduler_class, make_settings):
        mock_scheduler = MagicMock()
        mock_scheduler_class.return_value = mock_scheduler
        settings = make_settings(run_backup=True, cron='0 3 * * *')

        result = scheduler_module.init_scheduler(settings)

        assert result == mock_scheduler
        assert scheduler_module.scheduler == mock_scheduler

        call_kwargs = mock_scheduler_class.call_args[1]
        assert call_kwargs['timezone'] == 'UTC'
        assert call_kwargs['job_defaults']['max_instances'] == 1
        assert call_kwargs['job_defaults']['coalesce'] is True

        job_kwargs = mock_scheduler.add_job.call_args[1]
        assert job_kwargs['func'] == scheduler_module.scheduled_backup
        assert job_kwargs['args'] == [settings]
        assert job_kwargs['id'] == 'database_backup'
        assert 'hour=\'3\'' in str(job_kwargs['trigger'])

    @patch('dbdumper.scheduler.BlockingScheduler')
    def test_init_scheduler_only_once(self, mock_scheduler_class, make_settings):
        settings = make_settings(cron='0 3 * * *')

        result1 = scheduler_module.init_scheduler(settings)
        result2 = scheduler_module.init_scheduler(settings)

        assert result1 == result2
        mock_scheduler_class.assert_called_once()

    def test_init_scheduler_invalid_cron(self, make_settings):
        with pytest.raises(ValueError):
            scheduler_module.init_scheduler(make_settings(cron='every day'))

        assert scheduler_module.scheduler is None


class TestSchedulerLifecycle:

    def teardown_method(self):
        scheduler_module.scheduler = None

    def test_start_without_init(self):
        with pytest.raises(RuntimeError):
            scheduler_module.start_scheduler()

    def test_start_stops_on_interrupt(self):
        mock_scheduler = MagicMock()
        mock_scheduler.get_jobs.return_value = []
        mock_scheduler.start.side_effect = KeyboardInterrupt
        mock_scheduler.running = True
        scheduler_module.scheduler = mock_scheduler

        scheduler_module.start_scheduler()

        mock_scheduler.shutdown.assert_called_once_with(wait=False)
        assert scheduler_module.scheduler is None

    def test_stop_when_not_running(self):
        mock_scheduler = MagicMock()
        mock_scheduler.running = False
        scheduler_module.scheduler = mock_scheduler

        scheduler_module.stop_scheduler()

        mock_scheduler.shutdown.assert_not_called()


class TestScheduledBackup:

    @patch('dbdumper.scheduler.run_backup', return_value=0)
    def test_runs_backup(self, mock_run_backup, make_settings, caplog):
        settings = make_settings(run_backup=True)

        with caplog.at_level('INFO', logger='dbdumper'):
            scheduler_module.scheduled_backup(settings)

        mock_run_backup.assert_called_once_with(settings)
        assert 'Scheduled backup run completed' in caplog.text

    @patch('dbdumper.scheduler.run_backup', return_value=2)
    def test_failure_is_logged_not_raised(self, mock_run_backup, make_settings, caplog):
        with caplog.at_level('INFO', logger='dbdumper'):
            scheduler_module.scheduled_backup(make_settings(run_backup=True))

        assert 'Scheduled backup run failed (exit status 2)' in caplog.text
