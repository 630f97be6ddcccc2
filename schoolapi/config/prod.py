SETTINGS = {
    "logging": {"level": "INFO"},
    "AUDIT": {"LEVEL": "INFO", "CONSOLE": False},
}
