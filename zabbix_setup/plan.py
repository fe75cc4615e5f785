"""
Zabbix server installation plan.

Builds the ordered list of shell steps that install Zabbix with PostgreSQL
and Nginx on Ubuntu, plus the helpers around it: database password
generation, host address lookup and the closing summary panel.
"""

import secrets
import shlex
import socket
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from rich.panel import Panel
from rich.table import Table

from zabbix_setup.actions import Action, ShellAction
from zabbix_setup.checklist import ChecklistView
from zabbix_setup.config import Config
from zabbix_setup.steps import Step, StepRegistry
from zabbix_setup.theme import NordColors


@dataclass(frozen=True)
class PlannedStep:
    """A step before it joins a registry."""

    label: str
    action: Action
    allow_failure: bool = False


# ----------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------
def generate_password(length: int = 16, alphabet: Optional[str] = None) -> str:
    """Generate a random password from ``alphabet`` (letters, digits and _)."""
    if alphabet is None:
        alphabet = Config.PASSWORD_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(length))


def detect_host_address() -> str:
    """Return the host's first address, as ``hostname -I`` reports it."""
    try:
        result = subprocess.run(
            ["hostname", "-I"], capture_output=True, text=True, check=False
        )
        if result.returncode == 0 and result.stdout.split():
            return result.stdout.split()[0]
    except OSError:
        pass
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return "localhost"


def _locale_env(config: Config) -> Dict[str, str]:
    language = config.LOCALE.split(".")[0]
    return {
        "LANG": config.LOCALE,
        "LANGUAGE": f"{language}:{language.split('_')[0]}",
        "LC_ALL": config.LOCALE,
    }


# ----------------------------------------------------------------
# Plan
# ----------------------------------------------------------------
def build_plan(config: Config, password: str) -> List[PlannedStep]:
    """
    Build the installation steps for ``config``.

    Nothing is executed here; every command is only composed.

    Args:
        config: Installation settings
        password: Password for the Zabbix database user

    Returns:
        Ordered list of planned steps
    """
    s = config.sudo
    apt = f"{s}DEBIAN_FRONTEND=noninteractive apt-get"
    as_postgres = (
        "sudo -u postgres " if config.USE_SUDO else "runuser -u postgres -- "
    )
    as_db_user = (
        f"sudo -u {config.DB_USER} "
        if config.USE_SUDO
        else f"runuser -u {config.DB_USER} -- "
    )
    env = _locale_env(config)
    deb = f"/tmp/{config.zabbix_release_deb}"
    server_conf = config.zabbix_server_conf
    nginx_conf = config.zabbix_nginx_conf
    php_ini = config.php_ini
    services = " ".join(config.services)
    charset = config.LOCALE.split(".")[-1]
    locale_line = f"{config.LOCALE} {charset}".replace(".", "\\.")
    timezone_line = f'date.timezone = "{config.TIMEZONE}"'

    steps = [
        PlannedStep(
            "Updating system and installing prerequisites",
            ShellAction(
                f"{apt} update -y && {apt} upgrade -y && "
                f"{apt} install -y curl wget gnupg gnupg1 gnupg2"
            ),
        ),
        PlannedStep(
            f"Configuring system locale to {config.LOCALE}",
            ShellAction(
                f"{s}sed -i 's/^# \\({locale_line}\\)$/\\1/' /etc/locale.gen && "
                f"{s}locale-gen && "
                f"{s}update-locale LANG={env['LANG']} "
                f"LANGUAGE={env['LANGUAGE']} LC_ALL={env['LC_ALL']}"
            ),
        ),
        PlannedStep(
            "Installing Zabbix repository",
            ShellAction(
                f"wget {config.zabbix_release_url} -O {deb} && "
                f"{s}dpkg -i {deb} && {apt} update -y && rm -f {deb}",
                env=env,
            ),
        ),
        PlannedStep(
            "Installing Zabbix server, frontend, and agent2",
            ShellAction(
                f"{apt} install -y zabbix-server-pgsql zabbix-frontend-php "
                f"php{config.PHP_VERSION}-pgsql zabbix-nginx-conf "
                "zabbix-sql-scripts zabbix-agent2",
                env=env,
            ),
        ),
    ]

    if config.AGENT2_PLUGINS:
        plugins = " ".join(
            f"zabbix-agent2-plugin-{plugin}" for plugin in config.AGENT2_PLUGINS
        )
        steps.append(
            PlannedStep(
                "Installing Zabbix agent2 plugins",
                ShellAction(f"{apt} install -y {plugins}", env=env),
            )
        )

    steps += [
        PlannedStep(
            f"Installing PostgreSQL {config.POSTGRESQL_VERSION}",
            ShellAction(
                f"{apt} install -y postgresql-common && "
                f"echo | {s}/usr/share/postgresql-common/pgdg/apt.postgresql.org.sh && "
                f"{apt} install -y postgresql-{config.POSTGRESQL_VERSION}",
                env=env,
            ),
        ),
        PlannedStep(
            "Creating PostgreSQL user and database for Zabbix",
            ShellAction(
                f"{as_postgres}psql -c "
                + shlex.quote(
                    f"CREATE USER {config.DB_USER} WITH ENCRYPTED PASSWORD '{password}';"
                )
                + f" && {as_postgres}createdb -O {config.DB_USER} -E Unicode "
                f"-T template0 {config.DB_NAME}",
                env=env,
            ),
        ),
        PlannedStep(
            "Importing initial Zabbix database schema and data",
            ShellAction(
                f"zcat {config.schema_dump} | {as_db_user}psql {config.DB_NAME}",
                env=env,
            ),
        ),
        PlannedStep(
            "Configuring Zabbix server database settings",
            ShellAction(
                " && ".join(
                    f"{s}sed -i 's/^# {key}=.*/{key}={value}/' {server_conf}"
                    for key, value in (
                        ("DBHost", config.DB_HOST),
                        ("DBName", config.DB_NAME),
                        ("DBUser", config.DB_USER),
                        ("DBPassword", password),
                    )
                ),
                env=env,
            ),
        ),
        PlannedStep(
            f"Setting PHP timezone to {config.TIMEZONE}",
            ShellAction(
                f"if grep -q '^;date.timezone =' {php_ini}; then "
                f"{s}sed -i 's|^;date.timezone =.*|{timezone_line}|' {php_ini}; "
                f"else echo '{timezone_line}' | {s}tee -a {php_ini}; fi",
                env=env,
            ),
        ),
        PlannedStep(
            "Serving the Zabbix frontend at /",
            ShellAction(
                f"if [ -f {nginx_conf} ]; then "
                f"{s}sed -i 's|location /zabbix {{|location / {{|g' {nginx_conf} && "
                f"{s}sed -i 's|# alias /usr/share/zabbix;|alias /usr/share/zabbix;|g' "
                f"{nginx_conf} && "
                f"{s}sed -i 's|alias /usr/share/zabbix/html;|alias /usr/share/zabbix;|g' "
                f"{nginx_conf}; "
                f"else echo 'Warning: Zabbix Nginx configuration file {nginx_conf} "
                "not found. Manual configuration may be required.'; exit 1; fi",
                env=env,
            ),
            allow_failure=True,
        ),
        PlannedStep(
            "Removing default Nginx site configuration",
            ShellAction(
                f"{s}rm /etc/nginx/sites-enabled/default && "
                f"{s}rm /etc/nginx/sites-available/default",
                env=env,
            ),
            allow_failure=True,
        ),
        PlannedStep(
            "Enabling and starting Zabbix services",
            ShellAction(
                f"{s}systemctl restart {services} && {s}systemctl enable {services}",
                env=env,
            ),
        ),
    ]

    if config.SERVICE_START_WAIT:
        steps.append(
            PlannedStep(
                "Waiting for services to start",
                ShellAction(f"sleep {config.SERVICE_START_WAIT}"),
            )
        )

    steps.append(
        PlannedStep(
            "Checking service status",
            ShellAction(
                f"{s}systemctl status {services} --no-pager | grep 'Active:'; "
                f"{s}systemctl is-active {services}",
                env=env,
            ),
            allow_failure=True,
        )
    )
    return steps


def build_registry(
    plan: Sequence[PlannedStep], view: Optional[ChecklistView] = None
) -> StepRegistry:
    """Turn planned steps into a registry of pending steps."""
    return StepRegistry(
        [
            Step(
                index=i,
                label=planned.label,
                action=planned.action,
                allow_failure=planned.allow_failure,
            )
            for i, planned in enumerate(plan)
        ],
        view,
    )


# ----------------------------------------------------------------
# Reporting
# ----------------------------------------------------------------
def plan_table(plan: Sequence[PlannedStep], mask: Optional[str] = None) -> Table:
    """Table listing the planned steps and their commands, hiding ``mask``."""
    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        border_style=NordColors.FROST_3,
        title=f"[bold {NordColors.FROST_2}]Installation Steps[/]",
        title_justify="center",
        expand=True,
    )
    table.add_column("#", style=f"bold {NordColors.FROST_4}", justify="right", width=4)
    table.add_column("Step", style=f"bold {NordColors.FROST_2}")
    table.add_column("May fail", justify="center", width=8)
    table.add_column("Command", style=NordColors.SNOW_STORM_1, overflow="fold")

    for i, planned in enumerate(plan, 1):
        description = planned.action.description
        if mask:
            description = description.replace(mask, "********")
        table.add_row(
            str(i),
            planned.label,
            "yes" if planned.allow_failure else "",
            description,
        )
    return table


def render_summary(config: Config, password: str, host_address: str) -> Panel:
    """Closing panel with the frontend URL and credentials."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Property", style=f"bold {NordColors.FROST_2}")
    table.add_column("Value", style=NordColors.SNOW_STORM_1)

    table.add_row("Frontend URL", f"http://{host_address}/")
    table.add_row(f"Database user ({config.DB_USER}) password", password)
    table.add_row("Frontend username", config.FRONTEND_USER)
    table.add_row("Frontend password", config.FRONTEND_DEFAULT_PASSWORD)

    return Panel(
        table,
        title=f"[bold {NordColors.GREEN}]Zabbix {config.ZABBIX_VERSION} installation completed![/]",
        subtitle=f"[{NordColors.YELLOW}]Please change the default passwords after first login.[/]",
        border_style=NordColors.FROST_1,
        padding=(1, 2),
    )
