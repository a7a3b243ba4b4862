import logging, logging.config, os

class SwordLogger(object):
    def __init__(self, logging_config=None):
        self.logging_config = "./sword_logging.conf"  # default
        if logging_config is not None:
            self.logging_config = logging_config
        self.basic_config = """[loggers]
keys=root

[handlers]
keys=consoleHandler

[formatters]
keys=basicFormatting

[logger_root]
level=INFO
handlers=consoleHandler

[handler_consoleHandler]
class=StreamHandler
level=DEBUG
formatter=basicFormatting
args=(sys.stdout,)

[formatter_basicFormatting]
format=%(asctime)s - %(name)s - %(levelname)s - %(message)s
"""

        if not os.path.isfile(self.logging_config):
            self.create_logging_config(self.logging_config)

        logging.config.fileConfig(self.logging_config, disable_existing_loggers=False)

    def create_logging_config(self, pathtologgingconf):
        with open(pathtologgingconf, "w") as fn:
            fn.write(self.basic_config)

    def getLogger(self, name="swordserver"):
        return logging.getLogger(name)
