"""Static candidate catalog: named segment groups consumed by candidates.py."""

from __future__ import annotations

SHELL_DOTFILES = (
    ".bash_history",
    ".bashrc",
    ".zsh_history",
    ".zshrc",
    ".mysql_history",
    ".psql_history",
    ".python_history",
    ".viminfo",
    ".netrc",
    ".pgpass",
    ".my.cnf",
)

VCS_FILES = (
    ".git/config",
    ".git/HEAD",
    ".git-credentials",
    ".gitconfig",
    ".svn/entries",
    ".hg/hgrc",
)

CREDENTIAL_FILES = (
    ".aws/credentials",
    ".aws/config",
    ".config/gcloud/credentials.db",
    ".config/gcloud/credentials.json",
    ".config/gcloud/access_tokens.db",
    ".config/openvpn/auth.txt",
    ".docker/config.json",
    ".kube/config",
    ".npmrc",
    ".pypirc",
    ".s3cfg",
    ".htpasswd",
    ".ssh/authorized_keys",
    ".ssh/id_rsa",
    ".ssh/id_ecdsa",
    ".ssh/id_ed25519",
    ".ssh/known_hosts",
    "credentials.json",
    "secrets.json",
    "secrets.yml",
)

IDE_FILES = (
    ".vscode/sftp.json",
    ".vscode/settings.json",
    ".idea/workspace.xml",
    ".idea/dataSources.xml",
    "sftp-config.json",
    ".ftpconfig",
    ".remote-sync.json",
)

LOG_FILES = (
    "error_log",
    "error.log",
    "debug.log",
    "access.log",
    "php_errors.log",
    "storage/logs/laravel.log",
)

ENV_FILE = ".env"
ENV_SUFFIXES = ("", ".local", ".dev", ".prod", ".production", ".test", ".staging", ".bak", ".old")

CONFIG_FILES = (
    "app/etc/env.php",
    "config.local.php",
    "config.php",
    "config/settings.inc.php",
    "configuration.php",
    "contentbase.php",
    "settings.php",
    "sites/default/settings.php",
    "wp-config.php",
    "config/database.yml",
    "web.config",
)
BACKUP_SUFFIXES = (".bak", ".old", ".swp", "~", ".save", ".orig")

ARCHIVE_NAMES = (
    "archive",
    "backup",
    "backups",
    "files",
    "htdocs",
    "public_html",
    "site",
    "web",
    "www",
)
ARCHIVE_EXTENSIONS = (".zip", ".rar", ".7z", ".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tar.xz")

DUMP_NAMES = (
    "backup",
    "archive",
    "contentbase",
    "data",
    "database",
    "db",
    "db_backup",
    "db_dump",
    "db_export",
    "dump",
    "mysql",
)
DUMP_EXTENSIONS = (".sql", ".sql.gz", ".sql.zip", ".sql.bak")

# Deployment files: prefix x name x stage suffix x extension
STAGE_SUFFIXES = ("", ".prod", ".dev")
DEPLOY_PREFIXES = ("", "docker/", "deploy/")
COMPOSE_NAMES = ("docker-compose", "compose")
YAML_EXTENSIONS = (".yml", ".yaml")
DOCKERFILE_NAMES = ("Dockerfile",)
DEPLOY_LITERALS = (
    "docker-compose.override.yml",
    "Dockerfile.test",
    ".gitlab-ci.yml",
    ".travis.yml",
    "Jenkinsfile",
)
