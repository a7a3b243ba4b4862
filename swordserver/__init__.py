from .info import __version__, __author__, __license__

from .core import (SwordError, SwordServerException, SwordAuthException, AuthCredentials, SwordRequest, SwordResponse,
                    EntryDocument, Deposit, DepositReceipt, MediaResource, Authenticator, ContainerManager,
                    MediaResourceManager, StatementManager)
from .config import Configuration, SWORD_CONFIG_FILE
from .protocol import Errors, HttpHeaders, Namespaces, UriRegistry
from .statement import Statement, AtomStatement, OREStatement
from .classifier import Operation, RequestClassifier
from .response import ResponseAssembler, content_md5, http_date
from .endpoints import SwordAPIEndpoint, ContainerAPI, MediaResourceAPI
from .tempstore import TemporaryStore
