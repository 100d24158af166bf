"""Configuration file schema for secretary."""

DURATION_SCHEMA = {
    "oneOf": [
        {"type": "number", "exclusiveMinimum": 0},
        {
            "type": "string",
            "pattern": r"^\d+(\.\d+)?(ms|s|m|h)$",
            "description": "Duration such as 500ms, 15s, 2m or 1h",
        },
    ]
}

CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "secretary": {
            "type": "object",
            "properties": {
                "poll_frequency": DURATION_SCHEMA,
                "poll_timeout": DURATION_SCHEMA,
                "base_path": {
                    "type": "string",
                    "minLength": 1,
                    "description": "Directory where secret files are written",
                },
                "prefix": {
                    "type": "string",
                    "pattern": r"^[A-Za-z_][A-Za-z0-9_]*$",
                    "description": "Environment variable prefix that declares a secret",
                },
                "provider": {
                    "type": "string",
                    "enum": ["auto", "aws", "awsssm", "dummy"],
                },
                "reload_signal": {
                    "type": "string",
                    "pattern": r"^SIG[A-Z0-9]+$",
                },
                "kill_signal": {
                    "type": "string",
                    "pattern": r"^SIG[A-Z0-9]+$",
                },
                "aws_region": {"type": "string"},
            },
            "additionalProperties": False,
        }
    },
    "required": ["secretary"],
    "additionalProperties": False,
}
