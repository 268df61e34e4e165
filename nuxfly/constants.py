"""
nuxfly Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Project detection
NUXT_CONFIG_FILES = (
    "nuxt.config.ts",
    "nuxt.config.js",
    "nuxt.config.mjs",
    "nuxt.config.cjs",
)
NUXFLY_DIR_NAME = ".nuxfly"
DIST_DIR_NAME = ".output"
DOTENV_FILE = ".env"
# Permissions for generated files that are replaced atomically
DEFAULT_FILE_MODE = 0o644

# Descriptor (fly.toml) resolution
DESCRIPTOR_FILENAME = "fly.toml"
DESCRIPTOR_ENV_GLOB = "fly.*.toml"
PRODUCTION_ENVIRONMENTS = ("prod", "production")
DEFAULT_ENVIRONMENT = "prod"

# Environment variables
ENV_SELECTOR = "NUXFLY_ENV"
ENV_APP = "FLY_APP"
ENV_REGION = "FLY_REGION"
ENV_MEMORY = "FLY_MEMORY"
TOKEN_ENV_VARS = ("FLY_ACCESS_TOKEN", "FLY_API_TOKEN")

# Default app configuration
DEFAULT_REGION = "ord"
DEFAULT_MEMORY = "512mb"
DEFAULT_CPU_KIND = "shared"
DEFAULT_CPUS = 1
DEFAULT_MIN_INSTANCES = 1
DEFAULT_MAX_INSTANCES = 3
DEFAULT_ENV = {"NODE_ENV": "production"}
DEFAULT_VOLUME_SIZE = "1gb"
DEFAULT_NODE_VERSION = "22"

# SQLite volume
SQLITE_VOLUME_NAME = "sqlite_data"
SQLITE_MOUNT_PATH = "/data"
SQLITE_DATABASE_PATH = "/data/db.sqlite"
DEFAULT_VOLUME_SIZE_GB = 1

# Validation patterns
SIZE_PATTERN = r"^\d+(mb|gb)$"
APP_NAME_PATTERN = r"^[a-z0-9][a-z0-9-]*[a-z0-9]$"
APP_NAME_MAX_LENGTH = 30
REGION_PATTERN = r"^[a-z]{3}$"

# Exit codes
EXIT_GENERIC = 1
EXIT_NOT_FOUND = 2
EXIT_CONFIG_INVALID = 3
EXIT_NOT_NUXT_PROJECT = 4
EXIT_PERMISSION_DENIED = 13
EXIT_TOOL_NOT_FOUND = 127
EXIT_USER_CANCELLED = 130

# flyctl
FLYCTL_EXECUTABLE = "flyctl"
FLYCTL_INSTALL_URL = "https://fly.io/docs/flyctl/install/"

# Commands that manage their own descriptor/app selection
SELF_MANAGED_COMMANDS = frozenset(
    {
        "launch",
        "storage",
        "apps",
        "auth",
        "orgs",
        "version",
        "platform",
        "tokens",
    }
)

# Common flyctl commands (used for "did you mean" suggestions)
FLYCTL_COMMANDS = (
    "apps",
    "auth",
    "certs",
    "config",
    "console",
    "consul",
    "dashboard",
    "deploy",
    "dig",
    "docs",
    "doctor",
    "extensions",
    "image",
    "ips",
    "launch",
    "logs",
    "machine",
    "mpg",
    "orgs",
    "platform",
    "postgres",
    "proxy",
    "redis",
    "regions",
    "releases",
    "scale",
    "secrets",
    "services",
    "sftp",
    "ssh",
    "status",
    "storage",
    "tokens",
    "version",
    "volumes",
    "wireguard",
)
SUGGESTION_MAX_DISTANCE = 2
SUGGESTION_LIMIT = 3

# Buckets (Tigris via `flyctl storage`)
BUCKET_KINDS = ("litestream", "public", "private")
BUCKET_SUFFIXES = {
    "litestream": "-litestream",
    "public": "-public",
    "private": "-private",
}
BUCKET_FEATURE_FLAGS = {
    "litestream": "litestream",
    "public": "publicStorage",
    "private": "privateStorage",
}
BUCKET_LIST_PATTERN = r"(?<!\S)(\S+(?:-public|-private|-litestream))(?!\S)"
CREDENTIAL_PREFIXES = {
    "access_key_id": "AWS_ACCESS_KEY_ID:",
    "secret_access_key": "AWS_SECRET_ACCESS_KEY:",
    "endpoint_url": "AWS_ENDPOINT_URL_S3:",
    "region": "AWS_REGION:",
    "bucket_name": "BUCKET_NAME:",
}
LITESTREAM_SECRET_PREFIX = "LITESTREAM_S3_"
PUBLIC_BUCKET_SECRET_PREFIX = "NUXT_NUXFLY_PUBLIC_BUCKET_S3_"
PRIVATE_BUCKET_SECRET_PREFIX = "NUXT_NUXFLY_PRIVATE_BUCKET_S3_"
PUBLIC_URL_SECRET = "NUXT_PUBLIC_S3_PUBLIC_URL"
PUBLIC_URL_TEMPLATE = "https://{app}-public.t3.storageapi.dev"

# Litestream
LITESTREAM_VERSION = "0.3.13"
LITESTREAM_SYNC_INTERVAL = "30s"
LITESTREAM_RETENTION = "96h"
LITESTREAM_SNAPSHOT_INTERVAL = "2h"

# Drizzle
DRIZZLE_KIT_DEFAULT_VERSION = "^0.31.3"
DRIZZLE_ORM_DEFAULT_VERSION = "^0.44.2"
DRIZZLE_MIGRATION_DIRS = ("server/db/migrations", "drizzle/migrations", "drizzle")

# Studio
DEFAULT_STUDIO_PORT = 4983
DEFAULT_REMOTE_DB_PORT = 5432
TUNNEL_READY_MARKERS = ("Proxying", "localhost")
TUNNEL_READY_TIMEOUT = 10

# Package managers (lock file -> manager), checked in order
PACKAGE_MANAGER_LOCKFILES = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
)
PACKAGE_MANAGER_INSTALL_HINTS = {
    "pnpm": "Install pnpm with: npm install -g pnpm",
    "yarn": "Install yarn with: npm install -g yarn",
    "bun": "Install bun with: curl -fsSL https://bun.sh/install | bash",
    "npm": "npm should be available with Node.js installation",
}

# Log Configuration
LOGS_DIR_NAME = "logs"
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"
