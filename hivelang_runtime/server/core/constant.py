PROJECT_NAME = "HiveLang Capability Runtime"
API_V1_STR = "/api/v1"
VERSION = "0.1.0"
SCHEMA_VERSION = "v1"
