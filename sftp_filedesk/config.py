import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

TRUE_VALUES = ("true", "1", "yes")
LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class SSHConfig:
    host: str
    port: int = 22
    username: str | None = None
    password: str | None = None
    key_file: str | None = None  # Path to SSH private key
    key_passphrase: str | None = None  # Passphrase for encrypted keys
    use_agent: bool = True  # Try SSH agent for auth
    encoding: str = "utf-8"


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30
    probe_timeout_seconds: int = 10
    probe_path: str = "/"
    command_timeout_seconds: int = 300
    keepalive_interval_seconds: int = 30


@dataclass
class StagingConfig:
    temp_dir: str | None = None  # None = system temp directory
    remote_temp_dir: str = "/tmp"  # Where directory downloads are zipped


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = "sftp-filedesk.log"
    console: bool = True
    loggers: dict[str, str] = field(default_factory=dict)  # logger name -> level


@dataclass
class AppConfig:
    ssh: SSHConfig
    connection: ConnectionConfig
    staging: StagingConfig
    logging: LogConfig


# Environment variables read on top of the INI file
ENV_VARS = {
    "SFTP_HOST": "host",
    "SFTP_PORT": "port",
    "SFTP_USERNAME": "username",
    "SFTP_PASSWORD": "password",
    "SFTP_KEY_FILE": "key_file",
}


def _parse_int(section: str, key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(
            f"Invalid {key} value in [{section}]: '{value}' - must be an integer"
        )


def load_config(
    config_path: str | None = None, environ: Mapping[str, str] | None = None, **cli_args
) -> AppConfig:
    """
    Load configuration from an INI file, the environment and/or CLI arguments.
    Precedence: CLI arguments > environment > config file > defaults.

    Args:
        config_path: Path to the INI configuration file.
        environ: Environment mapping (defaults to os.environ).
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If host is missing or a numeric field is invalid.
    """
    if environ is None:
        environ = os.environ

    # Initialize with defaults
    ssh_config = {
        "host": None,
        "port": 22,
        "username": None,
        "password": None,
        "key_file": None,
        "key_passphrase": None,
        "use_agent": True,
        "encoding": "utf-8",
    }
    connection_config = {
        "timeout_seconds": 30,
        "probe_timeout_seconds": 10,
        "probe_path": "/",
        "command_timeout_seconds": 300,
        "keepalive_interval_seconds": 30,
    }
    staging_config = {
        "temp_dir": None,
        "remote_temp_dir": "/tmp",
    }
    log_config = {
        "level": "INFO",
        "file": "sftp-filedesk.log",
        "console": True,
        "loggers": {},
    }

    # Parse INI file if provided
    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        # Load [sftp] section
        if parser.has_section("sftp"):
            sftp_section = parser["sftp"]
            for key in ("host", "username", "password", "key_file", "key_passphrase", "encoding"):
                if sftp_section.get(key):
                    ssh_config[key] = sftp_section.get(key)
            if sftp_section.get("port"):
                ssh_config["port"] = _parse_int("sftp", "port", sftp_section.get("port"))
            if sftp_section.get("use_agent"):
                ssh_config["use_agent"] = sftp_section.get("use_agent").lower() in TRUE_VALUES

        # Load [connection] section
        if parser.has_section("connection"):
            conn_section = parser["connection"]
            for key in (
                "timeout_seconds",
                "probe_timeout_seconds",
                "command_timeout_seconds",
                "keepalive_interval_seconds",
            ):
                if conn_section.get(key):
                    connection_config[key] = _parse_int("connection", key, conn_section.get(key))
            if conn_section.get("probe_path"):
                connection_config["probe_path"] = conn_section.get("probe_path")

        # Load [staging] section
        if parser.has_section("staging"):
            for key in ("temp_dir", "remote_temp_dir"):
                if parser["staging"].get(key):
                    staging_config[key] = parser["staging"].get(key)

        # Load [logging] section
        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level").upper()
            if "file" in log_section:
                log_config["file"] = log_section.get("file")
            if log_section.get("console"):
                log_config["console"] = log_section.get("console").lower() in TRUE_VALUES

        # Load [loggers] section: one "logger.name = LEVEL" per line
        if parser.has_section("loggers"):
            for name, value in parser["loggers"].items():
                if value.upper() not in LEVEL_NAMES:
                    raise ValueError(
                        f"Invalid level for logger {name} in [loggers]: '{value}'"
                    )
                log_config["loggers"][name] = value.upper()

    # Environment overrides the file
    for env_name, key in ENV_VARS.items():
        value = environ.get(env_name)
        if not value:
            continue
        if key == "port":
            ssh_config["port"] = _parse_int("environment", env_name, value)
        else:
            ssh_config[key] = value

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("host") is not None:
        ssh_config["host"] = cli_args["host"]
    if cli_args.get("port") is not None:
        ssh_config["port"] = int(cli_args["port"])
    if cli_args.get("username") is not None:
        ssh_config["username"] = cli_args["username"] or None
    if cli_args.get("password") is not None:
        ssh_config["password"] = cli_args["password"] or None
    if cli_args.get("key_file") is not None:
        ssh_config["key_file"] = cli_args["key_file"]
    if cli_args.get("key_passphrase") is not None:
        ssh_config["key_passphrase"] = cli_args["key_passphrase"]
    if cli_args.get("temp_dir") is not None:
        staging_config["temp_dir"] = cli_args["temp_dir"]
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    # Validate required fields
    if not ssh_config["host"]:
        raise ValueError("Missing required configuration fields: host")
    if not 0 < ssh_config["port"] < 65536:
        raise ValueError(f"Invalid port: {ssh_config['port']}. Must be between 1 and 65535.")

    return AppConfig(
        ssh=SSHConfig(**ssh_config),
        connection=ConnectionConfig(**connection_config),
        staging=StagingConfig(**staging_config),
        logging=LogConfig(**log_config),
    )
