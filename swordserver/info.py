__version__ = "2.0"
__author__ = "Richard Jones"
__license__ = "BSD"
