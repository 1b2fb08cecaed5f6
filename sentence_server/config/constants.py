"""Configuration constants and defaults.

This module contains all default configuration values and constants used
throughout the configuration system.
"""

# Section names
SECTION_SERVER = "server"
SECTION_SECURITY = "security"
SECTION_LOGGING = "logging"
SECTION_MONITORING = "monitoring"

# Environment variable prefix: SENTENCE_<SECTION>_<KEY>
ENV_PREFIX = "SENTENCE_"

# Meta-configuration
ENV_SENTENCE_CONFIG = "SENTENCE_CONFIG"

# Default values, as configparser would hold them
DEFAULTS = {
    SECTION_SERVER: {
        "host": "0.0.0.0",
        "port": "8080",
        "listen_backlog": "10",
        "buffer_size": "4096",
        "max_value_length": "256",
        "max_connections": "100",
        "use_thread_pool": "true",
        "thread_pool_max": "100",
        "client_timeout": "0",
        "read_full_body": "false",
        "max_body_size": "65536",
        "escape_json_values": "false",
    },
    SECTION_SECURITY: {
        "max_connections_per_ip": "20",
    },
    SECTION_LOGGING: {
        "log_level": "INFO",
        "log_file": "",
    },
    SECTION_MONITORING: {
        "enabled": "false",
        "host": "127.0.0.1",
        "port": "9108",
    },
}
