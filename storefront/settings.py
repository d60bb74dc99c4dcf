import os

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "5174"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
SERVICE_NAME = os.environ.get("SERVICE_NAME", "storefront")
INVENTORY_RESERVE_RATE = float(os.environ.get("INVENTORY_RESERVE_RATE", "0.8"))
TRACES_SAMPLE_RATE = float(os.environ.get("TRACES_SAMPLE_RATE", "1.0"))
TRACES_CONSOLE_EXPORT = os.environ.get("TRACES_CONSOLE_EXPORT", "false").lower() == "true"
