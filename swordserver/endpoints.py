import base64, binascii

from .core import SwordError, SwordAuthException, SwordServerException, SwordResponse, AuthCredentials, Deposit
from .protocol import HttpHeaders
from .classifier import RequestClassifier, Operation
from .response import ResponseAssembler

from .sword_logging import logging
log = logging.getLogger(__name__)

class SwordAPIEndpoint(object):
    """
    The request lifecycle shared by the container and media resource endpoints:
    authenticate, classify, hand over to the manager and assemble the response.
    Endpoints hold nothing but configuration and collaborators, so one instance
    can serve any number of requests
    """
    def __init__(self, config, authenticator=None, temporary_store=None):
        self.config = config
        self.authenticator = authenticator
        self.classifier = RequestClassifier(config, temporary_store)
        self.assembler = ResponseAssembler(config)

    def get_auth_credentials(self, request, allow_unauthenticated=False):
        """
        Extract the HTTP Basic credentials (and any On-Behalf-Of user) from the
        request.  Raises SwordAuthException with retry=True if there are no
        credentials and we need them, or retry=False if they can't be read
        """
        auth_header = request.get_header(HttpHeaders.authorization)
        obo = request.get_header(HttpHeaders.on_behalf_of)

        # if we're not supplied with an auth header, bounce (unless anonymous access is ok)
        if auth_header is None or auth_header.strip() == "":
            if allow_unauthenticated:
                log.debug("No credentials supplied; continuing anonymously")
                return AuthCredentials()
            raise SwordAuthException(msg="No credentials supplied", retry=True)

        # deconstruct the BASIC auth header
        parts = auth_header.strip().split(None, 1)
        if len(parts) != 2 or parts[0].lower() != "basic":
            log.error("Authentication header is not HTTP Basic")
            raise SwordAuthException(msg="Unable to interpret authentication header")
        try:
            decoded = base64.b64decode(parts[1], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            log.error("Unable to decode the authentication header")
            raise SwordAuthException(msg="Unable to interpret authentication header")
        if ":" not in decoded:
            log.error("Authentication header has no password separator")
            raise SwordAuthException(msg="Unable to interpret authentication header")

        username, password = decoded.split(":", 1)
        log.info("Authentication details: " + username + ":[**password**]; On Behalf Of: " + str(obo))
        return AuthCredentials(username, password, obo)

    def authenticate(self, credentials):
        # anonymous credentials have nothing to check
        if credentials.anonymous or self.authenticator is None:
            return
        self.authenticator.basic_authenticate(credentials)

    def _allow_unauthenticated(self, request):
        return False

    def _handle(self, request, operation_handler):
        log.debug(request.method + " on " + self.__class__.__name__ + " " + str(request.url) +
                    "; Incoming HTTP headers: " + str(dict([(k, v) for k, v in request.headers.items()
                                                            if k != HttpHeaders.authorization])))

        # the deposit is created before anything else can go wrong, and every
        # temporary file it acquires is released when this block exits
        with Deposit() as deposit:
            try:
                auth = self.get_auth_credentials(request, self._allow_unauthenticated(request))
            except SwordAuthException as e:
                if e.retry:
                    return self.assembler.challenge_response(self.config.auth_realm)
                return self.assembler.bad_credentials_response()

            try:
                self.authenticate(auth)
                return operation_handler(request, deposit, auth)
            except SwordError as e:
                return self.assembler.error_response(e)
            except SwordAuthException as e:
                log.info("Authentication rejected: " + str(e.msg))
                return self.assembler.forbidden_response()

    def _expect(self, request, method):
        if request.method != method:
            raise SwordServerException("Expected a " + method + " request, got " + request.method)
        return self.dispatch(request)

    def dispatch(self, request):
        raise NotImplementedError()

    def get(self, request):
        return self._expect(request, "GET")

    def head(self, request):
        return self._expect(request, "HEAD")

    def put(self, request):
        return self._expect(request, "PUT")

    def post(self, request):
        return self._expect(request, "POST")

    def delete(self, request):
        return self._expect(request, "DELETE")

class ContainerAPI(SwordAPIEndpoint):
    """
    The container, which is addressed by the Edit-IRI (and the SE-IRI, which is
    the same resource in this server)
    """
    def __init__(self, container_manager, statement_manager, config, authenticator=None, temporary_store=None):
        SwordAPIEndpoint.__init__(self, config, authenticator, temporary_store)
        self.container_manager = container_manager
        self.statement_manager = statement_manager

    def dispatch(self, request):
        return self._handle(request, self._container)

    def _container(self, request, deposit, auth):
        def is_statement_request(iri, accept_headers):
            return self.container_manager.is_statement_request(iri, accept_headers, auth, self.config)

        op = self.classifier.classify_container(request, deposit, is_statement_request)
        log.info("Container request classified as " + op.kind)

        if op.kind == Operation.RETRIEVE_STATEMENT:
            statement = self.statement_manager.get_statement(op.iri, op.accept_headers, auth, self.config)
            return self.assembler.statement_response(statement, op.send_body)

        elif op.kind == Operation.RETRIEVE_RECEIPT:
            receipt = self.container_manager.get_entry(op.iri, op.accept_headers, auth, self.config)
            return self.assembler.receipt_response(receipt, 200, op.send_body)

        elif op.kind == Operation.REPLACE_METADATA:
            receipt = self.container_manager.replace_metadata(op.iri, deposit, auth, self.config)
            return self.assembler.deposit_response(receipt, 200, location_required=True)

        elif op.kind == Operation.ADD_METADATA:
            receipt = self.container_manager.add_metadata(op.iri, deposit, auth, self.config)
            return self.assembler.deposit_response(receipt, 200)

        elif op.kind == Operation.USE_HEADERS:
            receipt = self.container_manager.use_headers(op.iri, deposit, auth, self.config)
            return self.assembler.deposit_response(receipt, 200)

        elif op.kind == Operation.ADD_RESOURCES:
            receipt = self.container_manager.add_resources(op.iri, deposit, auth, self.config)
            return self.assembler.deposit_response(receipt, 200)

        elif op.kind == Operation.DELETE_CONTAINER:
            self.container_manager.delete_container(op.iri, auth, self.config)
            return SwordResponse(status=204)

        raise SwordServerException("Container endpoint cannot handle operation " + op.kind)

class MediaResourceAPI(SwordAPIEndpoint):
    """
    The media resource, which is addressed by the EM-IRI
    """
    def __init__(self, media_resource_manager, config, authenticator=None, temporary_store=None):
        SwordAPIEndpoint.__init__(self, config, authenticator, temporary_store)
        self.media_resource_manager = media_resource_manager

    def _allow_unauthenticated(self, request):
        # only retrieval may be anonymous
        return request.method in ("GET", "HEAD") and bool(self.config.allow_unauthenticated_media_access)

    def dispatch(self, request):
        return self._handle(request, self._media_resource)

    def _media_resource(self, request, deposit, auth):
        op = self.classifier.classify_media_resource(request, deposit)
        log.info("Media resource request classified as " + op.kind)

        if op.kind == Operation.RETRIEVE_MEDIA_RESOURCE:
            resource = self.media_resource_manager.get_media_resource_representation(op.iri, op.accept_headers,
                                                                                      auth, self.config)
            return self.assembler.media_resource_response(resource, op.send_body)

        elif op.kind == Operation.REPLACE_MEDIA_RESOURCE:
            receipt = self.media_resource_manager.replace_media_resource(op.iri, deposit, auth, self.config)
            # notice that this is different from the POST as per AtomPub
            return self.assembler.location_response(receipt, 204)

        elif op.kind == Operation.ADD_MEDIA_RESOURCE:
            receipt = self.media_resource_manager.add_resource(op.iri, deposit, auth, self.config)
            return self.assembler.deposit_response(receipt, 201, location_required=True, no_receipt_status=201)

        elif op.kind == Operation.DELETE_MEDIA_RESOURCE:
            self.media_resource_manager.delete_media_resource(op.iri, auth, self.config)
            return SwordResponse(status=204)

        raise SwordServerException("Media resource endpoint cannot handle operation " + op.kind)
