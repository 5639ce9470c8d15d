"""
Tests for the workflow rules file loader, the SLA scheduler wrapper and the
database engine accessor.
"""

from unittest.mock import AsyncMock

import pytest

from helpdesk.config import WorkflowTrigger
from helpdesk.core import ConfigurationException
from helpdesk.infrastructure import database
from helpdesk.sla.infrastructure import SLAScheduler
from helpdesk.workflow.infrastructure import load_rules_from_yaml


class TestRuleLoader:
    """YAML rule files."""

    def test_loads_rules(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "rules:\n"
            "  - name: tag_billing\n"
            "    trigger: ticket_created\n"
            "    conditions:\n"
            "      - {field: category, operator: equals, value: billing}\n"
            "    actions:\n"
            "      - {type: add_tag, value: billing}\n"
        )

        rules = load_rules_from_yaml(path)

        assert [r.name for r in rules] == ["tag_billing"]
        assert rules[0].trigger == WorkflowTrigger.TICKET_CREATED
        assert rules[0].actions[0].value == "billing"

    def test_accepts_bare_list(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("- name: vip\n  actions:\n    - {type: add_tag, value: vip}\n")

        rules = load_rules_from_yaml(path)

        assert rules[0].trigger == WorkflowTrigger.TICKET_UPDATED

    def test_missing_file_yields_no_rules(self, tmp_path):
        assert load_rules_from_yaml(tmp_path / "absent.yaml") == []

    def test_invalid_rule_raises(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  - name: broken\n    actions:\n      - {type: explode}\n")

        with pytest.raises(ConfigurationException) as exc_info:
            load_rules_from_yaml(path)

        assert exc_info.value.details["index"] == 0


class TestSLAScheduler:
    """Job registration and failure isolation."""

    @pytest.mark.asyncio
    async def test_start_registers_both_jobs(self):
        scheduler = SLAScheduler(sla_check_minutes=15, escalation_check_minutes=60)

        await scheduler.start(AsyncMock(), AsyncMock())
        try:
            assert scheduler.is_running
            job_ids = {job.id for job in scheduler._scheduler.get_jobs()}
            assert job_ids == {"sla_check", "escalation_check"}
        finally:
            await scheduler.stop()

        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_failing_job_is_contained(self):
        job = AsyncMock(side_effect=RuntimeError("database down"))

        await SLAScheduler._guarded("sla_check", job)()

        job.assert_awaited_once()


class TestDatabaseEngine:
    """Engine accessor before startup."""

    def test_engine_requires_init(self, monkeypatch):
        monkeypatch.setattr(database, "_engine", None)

        with pytest.raises(RuntimeError):
            database.get_engine()
