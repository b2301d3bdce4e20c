"""staffing_api."""

from .monitoring.logger import configure_logger

# Configure logger with default settings (console logging only);
# create_app() reconfigures it with the level from Settings
configure_logger()
