"""
Tests for the realm command-line interface.
"""

from click.testing import CliRunner

from realm.cli import main


def test_help_lists_job_groups():
    """Test the top-level help names the maintenance groups."""
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    for group in ("serve", "seed", "world", "decay", "house", "servants", "roles", "minigames", "taxes"):
        assert group in result.output


def test_set_date_runs_against_the_database():
    """Test set-date opens a unit of work and prints the new date."""
    result = CliRunner().invoke(main, ["world", "set-date", "3", "summer", "4"])
    assert result.exit_code == 0, result.output
    assert "Week 4 of Summer, Year 3" in result.output


def test_set_date_rejects_out_of_range_week():
    """Test calendar validation errors surface as bad parameters."""
    result = CliRunner().invoke(main, ["world", "set-date", "3", "summer", "13"])
    assert result.exit_code == 2
    assert "Week must be between 1 and 12" in result.output


def test_set_date_rejects_unknown_season():
    """Test the season argument is a fixed choice."""
    result = CliRunner().invoke(main, ["world", "set-date", "3", "monsoon", "1"])
    assert result.exit_code == 2


def test_taxes_collect_reports_the_day():
    """Test the tax job runs for the requested day and reports its totals."""
    result = CliRunner().invoke(main, ["taxes", "collect", "--date", "2026-03-01"])
    assert result.exit_code == 0, result.output
    assert '"tax_period": "2026-03-01"' in result.output
    assert '"players_taxed": 0' in result.output
