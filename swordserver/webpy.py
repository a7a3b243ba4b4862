import io
import web

from .core import SwordRequest
from .endpoints import ContainerAPI, MediaResourceAPI
from .tempstore import TemporaryStore

from .sword_logging import SwordLogger, logging
SwordLogger()
log = logging.getLogger(__name__)

# create the global configuration and import the implementation classes
from .config import Configuration
config = Configuration()
ContainerManager = config.get_container_manager_implementation()
MediaResourceManager = config.get_media_resource_manager_implementation()
StatementManager = config.get_statement_manager_implementation()
Authenticator = config.get_authenticator_implementation()

def get_authenticator():
    # without a configured authenticator, credentials are not checked against any identity store
    if config.authenticator is None:
        return None
    return Authenticator(config)

# SWORD URLS
#############################################################################
# Define our URL mappings for the web service.  We are using URL parts immediately after the base of the service
# which reflect the short-hand terms used in the SWORD documentation (em-uri and edit-uri)
#
urls = (
    '/em-uri/(.+)', 'MediaResource',            # The URI used in atom:link@rel=edit-media
    '/edit-uri/(.+)', 'Container',              # The URI used in atom:link@rel=edit
)

# USEFUL TERM MAPS
#############################################################################

STATUS_MAP = {
    200 : "200 OK",
    201 : "201 Created",
    204 : "204 No Content",
    400 : "400 Bad Request",
    401 : "401 Unauthorized",
    403 : "403 Forbidden",
    404 : "404 Not Found",
    405 : "405 Method Not Allowed",
    406 : "406 Not Acceptable",
    410 : "410 Gone",
    412 : "412 Precondition Failed",
    413 : "413 Request Entity Too Large",
    415 : "415 Unsupported Media Type",
    500 : "500 Internal Server Error"
}

# SWORD HTTP HANDLERS
#############################################################################
# Define a set of handlers for the various URLs defined above to be used by web.py

class SwordHttpHandler(object):
    CHUNK_SIZE = 65536

    def _map_webpy_headers(self, headers):
        # CONTENT_TYPE and CONTENT_LENGTH come without the HTTP_ prefix in the WSGI environment
        mapped = {}
        for k, v in headers.items():
            if k.startswith("HTTP_"):
                mapped[k[5:].replace("_", "-").lower()] = v
            elif k in ("CONTENT_TYPE", "CONTENT_LENGTH"):
                mapped[k.replace("_", "-").lower()] = v
        return mapped

    def get_request(self, method):
        headers = self._map_webpy_headers(web.ctx.env)
        input_stream = None
        if method in ("PUT", "POST"):
            input_stream = io.BytesIO(web.data())
        return SwordRequest(method, web.ctx.home + web.ctx.path, headers, input_stream)

    def send(self, response):
        web.ctx.status = STATUS_MAP.get(response.status, str(response.status))
        for k, v in response.headers.items():
            web.header(k, v)
        if response.body is None:
            return
        if isinstance(response.body, bytes):
            return response.body
        return self._stream(response.body)

    def _stream(self, f):
        try:
            while True:
                chunk = f.read(self.CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            f.close()

class Container(SwordHttpHandler):
    """
    Class to deal with requests to the container, which is represented by the main Atom Entry document returned in
    the deposit receipt (Edit-URI).
    """
    def _api(self):
        return ContainerAPI(ContainerManager(config), StatementManager(config), config,
                            authenticator=get_authenticator(), temporary_store=TemporaryStore(config))

    def GET(self, path):
        return self.send(self._api().get(self.get_request("GET")))

    def HEAD(self, path):
        return self.send(self._api().head(self.get_request("HEAD")))

    def PUT(self, path):
        return self.send(self._api().put(self.get_request("PUT")))

    # NOTE: this POST action on the Container is represented in SWORD
    # by a POST to the SE-IRI (The SWORD Edit IRI), and is also used to complete
    # unfinished deposits (using the In-Progress header)
    def POST(self, path):
        return self.send(self._api().post(self.get_request("POST")))

    def DELETE(self, path):
        return self.send(self._api().delete(self.get_request("DELETE")))

class MediaResource(SwordHttpHandler):
    """
    Class to represent the media resource itself (EM-URI)
    """
    def _api(self):
        return MediaResourceAPI(MediaResourceManager(config), config,
                                authenticator=get_authenticator(), temporary_store=TemporaryStore(config))

    def GET(self, path):
        return self.send(self._api().get(self.get_request("GET")))

    def HEAD(self, path):
        return self.send(self._api().head(self.get_request("HEAD")))

    def PUT(self, path):
        return self.send(self._api().put(self.get_request("PUT")))

    def POST(self, path):
        return self.send(self._api().post(self.get_request("POST")))

    def DELETE(self, path):
        return self.send(self._api().delete(self.get_request("DELETE")))

# WEB SERVER
#######################################################################
# This is the bit which actually invokes the web.py server when this module is run

app = web.application(urls, globals())

# if we run the file as a mod_wsgi module, do this
application = app.wsgifunc()

# if we run the file directly, use the bundled server ...
if __name__ == "__main__":
    app.run()
