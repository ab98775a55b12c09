import logging

logging.getLogger("wsl_monitor").addHandler(logging.NullHandler())
