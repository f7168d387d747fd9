"""Configuration settings for the content server."""
import os

# Directory paths
STORE_DIR = os.getenv("CONTENT_STORE_DIR", "./store")
TEMP_DIR = os.getenv("CONTENT_TEMP_DIR", "./temp")  # must share a filesystem with STORE_DIR
LOGS_DIR = os.getenv("CONTENT_LOGS_DIR", "./logs")

# Listener
HOST = os.getenv("CONTENT_HOST", "127.0.0.1")
PORT = int(os.getenv("CONTENT_PORT", "8080"))

# Write failure alerting
WRITE_FAILURE_THRESHOLD = 3
WRITE_FAILURE_WINDOW_SECONDS = 60
