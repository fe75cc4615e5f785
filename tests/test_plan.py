"""Tests for zabbix_setup.plan."""

import string

import pytest

from zabbix_setup.actions import ShellAction
from zabbix_setup.config import Config
from zabbix_setup.plan import (
    PlannedStep,
    build_plan,
    build_registry,
    generate_password,
    plan_table,
    render_summary,
)
from zabbix_setup.steps import StepStatus

PASSWORD = "Pw_0123456789abc"

EXPECTED_LABELS = [
    "Updating system and installing prerequisites",
    "Configuring system locale to en_US.UTF-8",
    "Installing Zabbix repository",
    "Installing Zabbix server, frontend, and agent2",
    "Installing Zabbix agent2 plugins",
    "Installing PostgreSQL 17",
    "Creating PostgreSQL user and database for Zabbix",
    "Importing initial Zabbix database schema and data",
    "Configuring Zabbix server database settings",
    "Setting PHP timezone to Asia/Bangkok",
    "Serving the Zabbix frontend at /",
    "Removing default Nginx site configuration",
    "Enabling and starting Zabbix services",
    "Waiting for services to start",
    "Checking service status",
]

ALLOWED_TO_FAIL = {
    "Serving the Zabbix frontend at /",
    "Removing default Nginx site configuration",
    "Checking service status",
}


def _by_label(plan):
    return {planned.label: planned for planned in plan}


class TestGeneratePassword:
    def test_length_and_alphabet(self):
        password = generate_password(16)
        allowed = set(string.ascii_letters + string.digits + "_")
        assert len(password) == 16
        assert set(password) <= allowed

    def test_custom_alphabet(self):
        assert set(generate_password(32, "ab")) <= {"a", "b"}

    def test_passwords_differ(self):
        assert len({generate_password() for _ in range(20)}) == 20


class TestBuildPlan:
    @pytest.fixture
    def plan(self):
        return build_plan(Config(), PASSWORD)

    def test_step_order(self, plan):
        assert [planned.label for planned in plan] == EXPECTED_LABELS

    def test_failure_policy(self, plan):
        assert {p.label for p in plan if p.allow_failure} == ALLOWED_TO_FAIL

    def test_all_steps_are_shell_commands(self, plan):
        assert all(isinstance(p.action, ShellAction) for p in plan)

    def test_password_reaches_database_steps(self, plan):
        steps = _by_label(plan)
        create = steps["Creating PostgreSQL user and database for Zabbix"].action.command
        conf = steps["Configuring Zabbix server database settings"].action.command
        assert "CREATE USER zabbix WITH ENCRYPTED PASSWORD" in create
        assert PASSWORD in create
        assert f"DBPassword={PASSWORD}" in conf
        assert "DBName=zabbix" in conf

    def test_sudo_by_default(self, plan):
        steps = _by_label(plan)
        assert "sudo -u postgres psql" in steps[
            "Creating PostgreSQL user and database for Zabbix"
        ].action.command

    def test_without_sudo(self):
        plan = build_plan(Config(USE_SUDO=False), PASSWORD)
        assert not any("sudo " in p.action.command for p in plan)
        create = _by_label(plan)["Creating PostgreSQL user and database for Zabbix"]
        assert "runuser -u postgres -- psql" in create.action.command

    def test_no_plugins_drops_plugin_step(self):
        plan = build_plan(Config(AGENT2_PLUGINS=[]), PASSWORD)
        assert "Installing Zabbix agent2 plugins" not in _by_label(plan)

    def test_plugin_packages(self, plan):
        command = _by_label(plan)["Installing Zabbix agent2 plugins"].action.command
        assert "zabbix-agent2-plugin-mongodb" in command
        assert "zabbix-agent2-plugin-postgresql" in command

    def test_no_wait_drops_sleep_step(self):
        plan = build_plan(Config(SERVICE_START_WAIT=0), PASSWORD)
        assert "Waiting for services to start" not in _by_label(plan)

    def test_timezone(self):
        plan = build_plan(Config(TIMEZONE="Europe/Berlin"), PASSWORD)
        command = _by_label(plan)["Setting PHP timezone to Europe/Berlin"].action.command
        assert 'date.timezone = "Europe/Berlin"' in command

    def test_locale_environment(self, plan):
        env = _by_label(plan)["Installing Zabbix repository"].action.env
        assert env == {"LANG": "en_US.UTF-8", "LANGUAGE": "en_US:en", "LC_ALL": "en_US.UTF-8"}


class TestBuildRegistry:
    def test_registry_mirrors_plan(self, fake_action):
        plan = [
            PlannedStep("A", fake_action()),
            PlannedStep("B", fake_action(), allow_failure=True),
        ]
        registry = build_registry(plan)
        assert [s.label for s in registry] == ["A", "B"]
        assert [s.allow_failure for s in registry] == [False, True]
        assert registry.statuses() == (StepStatus.PENDING, StepStatus.PENDING)
        assert registry[1].action is plan[1].action


class TestReporting:
    def test_plan_table_masks_password(self, plain_console):
        plain_console.print(plan_table(build_plan(Config(), PASSWORD), mask=PASSWORD))
        out = plain_console.file.getvalue()
        assert "Installation Steps" in out
        assert PASSWORD not in out
        assert "********" in out

    def test_summary(self, plain_console):
        plain_console.print(render_summary(Config(), PASSWORD, "10.1.2.3"))
        out = plain_console.file.getvalue()
        assert "http://10.1.2.3/" in out
        assert PASSWORD in out
        assert "Admin" in out
        assert "installation completed" in out
