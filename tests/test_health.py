"""Basic health check tests: imports, configuration, CLI."""

from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from chefdesk.main import app as cli


runner = CliRunner()


def test_import_chefdesk():
    """Test that chefdesk package can be imported."""
    import chefdesk
    assert chefdesk.__version__ == "0.1.0"


def test_import_scheduling():
    """Test that the scheduling vocabulary is exported."""
    from chefdesk.scheduling import ScheduleTask, TimelineEditor, TimeWindow, request_schedule

    window = TimeWindow(start="06:00", end="17:00")
    editor = TimelineEditor(window)
    assert editor.tasks == []
    assert callable(request_schedule)
    assert ScheduleTask.model_fields["task_id"].alias == "menuItemId"


def test_settings_defaults():
    from chefdesk.config import get_settings

    settings = get_settings()
    assert settings.schedule_window_start == "06:00"
    assert settings.schedule_window_end == "17:00"
    assert settings.schedule_snap_minutes == 15
    assert settings.schedule_save_debounce_seconds == 1.0
    assert settings.schedule_drag_threshold_px == 5
    assert settings.is_development


def test_cli_health():
    result = runner.invoke(cli, ["health"])
    assert result.exit_code == 0
    assert "All checks passed" in result.output


def test_cli_version():
    result = runner.invoke(cli, ["version"])
    assert "0.1.0" in result.output


def test_cli_show_without_schedule(mock_supabase):
    with patch("chefdesk.db.client.get_service_client", return_value=mock_supabase):
        result = runner.invoke(cli, ["show", "chef-1"])
    assert result.exit_code == 0
    assert "No saved schedule" in result.output


def test_cli_show_renders_table(mock_supabase):
    mock_supabase.table.return_value.execute.return_value = MagicMock(
        data=[
            {
                "chef_id": "chef-1",
                "prep_list_items": ["a"],
                "schedule_data": [
                    {"menuItemId": "a", "menuItemName": "Short Rib", "startTime": "06:00",
                     "endTime": "06:30", "duration": 30},
                ],
                "time_window_start": "06:00",
                "time_window_end": "17:00",
                "updated_at": "2024-05-01T12:00:00+00:00",
            }
        ]
    )
    with patch("chefdesk.db.client.get_service_client", return_value=mock_supabase):
        result = runner.invoke(cli, ["show", "chef-1"])
    assert result.exit_code == 0
    assert "Short Rib" in result.output
    assert "06:30" in result.output
