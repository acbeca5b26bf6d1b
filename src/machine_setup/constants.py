"""Constants for machine-setup."""

# Subprocess timeouts (seconds)
PROBE_TIMEOUT = 30
DOWNLOAD_TIMEOUT = 30
PREFERENCE_TIMEOUT = 10

# Where Homebrew and the tools it installs live when not yet on PATH
DEFAULT_SEARCH_PATHS = ("/opt/homebrew/bin", "/usr/local/bin")

SETUP_DIR_NAME = ".machine-setup"
CONFIG_FILE_NAME = "config.toml"
TRANSCRIPT_SUFFIX = "setup.log"
