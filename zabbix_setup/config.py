"""Configuration for the Zabbix installation run."""

import os
import re
import string
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Dict, List, Mapping, Optional

ENV_PREFIX = "ZABBIX_SETUP_"
UI_MODES = ("auto", "live", "plain")
TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")
TIMEZONE_PATTERN = re.compile(r"^[A-Za-z0-9_+\-]+(/[A-Za-z0-9_+\-]+)*$")
LOCALE_PATTERN = re.compile(r"^[a-z]{2,3}_[A-Z]{2}\.[A-Za-z0-9-]+$")
# Passwords are pasted into sed expressions and quoted SQL unescaped
PASSWORD_CHARSET = frozenset(string.ascii_letters + string.digits + "_")


def default_log_file() -> str:
    return f"/tmp/zabbix_install_{datetime.now().strftime('%Y%m%d%H%M%S')}.log"


# ----------------------------------------------------------------
# Configuration & Constants
# ----------------------------------------------------------------
@dataclass
class Config:
    """Settings for one installation run."""

    LOG_FILE: str = field(default_factory=default_log_file)
    UI_MODE: str = "auto"
    TREAT_ALLOWED_FAILURE_AS_PROCESS_FAILURE: bool = False
    USE_SUDO: bool = True

    # Versions
    ZABBIX_VERSION: str = "7.0"
    UBUNTU_RELEASE: str = "22.04"
    POSTGRESQL_VERSION: str = "17"
    PHP_VERSION: str = "8.1"

    # Database
    DB_HOST: str = "localhost"
    DB_NAME: str = "zabbix"
    DB_USER: str = "zabbix"
    PASSWORD_LENGTH: int = 16
    PASSWORD_ALPHABET: str = string.ascii_letters + string.digits + "_"

    # Frontend
    TIMEZONE: str = "Asia/Bangkok"
    LOCALE: str = "en_US.UTF-8"
    SERVICE_START_WAIT: int = 10
    AGENT2_PLUGINS: List[str] = field(
        default_factory=lambda: ["mongodb", "mssql", "postgresql"]
    )
    FRONTEND_USER: str = "Admin"
    FRONTEND_DEFAULT_PASSWORD: str = "zabbix"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check values that would only fail deep inside a run.

        Raises:
            ValueError: On an invalid setting
        """
        if self.UI_MODE not in UI_MODES:
            raise ValueError(
                f"UI_MODE must be one of {', '.join(UI_MODES)}, not {self.UI_MODE!r}"
            )
        if self.PASSWORD_LENGTH < 8:
            raise ValueError("PASSWORD_LENGTH must be at least 8")
        if not self.PASSWORD_ALPHABET:
            raise ValueError("PASSWORD_ALPHABET must not be empty")
        unsafe = set(self.PASSWORD_ALPHABET) - PASSWORD_CHARSET
        if unsafe:
            raise ValueError(
                "PASSWORD_ALPHABET may only contain letters, digits and _, "
                f"not {''.join(sorted(unsafe))!r}"
            )
        if self.SERVICE_START_WAIT < 0:
            raise ValueError("SERVICE_START_WAIT must not be negative")
        for name in ("DB_NAME", "DB_USER"):
            value = getattr(self, name)
            if not value or not all(c.isalnum() or c == "_" for c in value):
                raise ValueError(f"{name} must be a non-empty SQL identifier")
        if not TIMEZONE_PATTERN.match(self.TIMEZONE):
            raise ValueError(f"TIMEZONE {self.TIMEZONE!r} is not a valid zone name")
        if not LOCALE_PATTERN.match(self.LOCALE):
            raise ValueError(f"LOCALE {self.LOCALE!r} must look like en_US.UTF-8")

    # ------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------
    @property
    def sudo(self) -> str:
        return "sudo " if self.USE_SUDO else ""

    @property
    def zabbix_release_deb(self) -> str:
        return (
            f"zabbix-release_latest_{self.ZABBIX_VERSION}"
            f"+ubuntu{self.UBUNTU_RELEASE}_all.deb"
        )

    @property
    def zabbix_release_url(self) -> str:
        return (
            f"https://repo.zabbix.com/zabbix/{self.ZABBIX_VERSION}/ubuntu/pool/main/"
            f"z/zabbix-release/{self.zabbix_release_deb}"
        )

    @property
    def zabbix_server_conf(self) -> str:
        return "/etc/zabbix/zabbix_server.conf"

    @property
    def zabbix_nginx_conf(self) -> str:
        return "/etc/nginx/conf.d/zabbix.conf"

    @property
    def schema_dump(self) -> str:
        return "/usr/share/zabbix-sql-scripts/postgresql/server.sql.gz"

    @property
    def php_fpm_service(self) -> str:
        return f"php{self.PHP_VERSION}-fpm"

    @property
    def php_ini(self) -> str:
        return f"/etc/php/{self.PHP_VERSION}/fpm/php.ini"

    @property
    def services(self) -> List[str]:
        return ["zabbix-server", "zabbix-agent2", "nginx", self.php_fpm_service]

    # ------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------
    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides
    ) -> "Config":
        """
        Build a Config from ``ZABBIX_SETUP_*`` variables plus explicit overrides.

        Overrides whose value is None are ignored, so unset CLI options fall
        through to the environment and then to the defaults.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, object] = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name)
            if raw is None:
                continue
            values[f.name] = _coerce(f.name, f.type, raw)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _coerce(name: str, type_: object, raw: str) -> object:
    if type_ is bool:
        lowered = raw.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, not {raw!r}")
    if type_ is int:
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{name} must be an integer, not {raw!r}")
    if getattr(type_, "__origin__", None) is list:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw
