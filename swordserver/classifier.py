import base64, binascii

from .core import SwordError, EntryDocument
from .protocol import Errors, HttpHeaders
from .negotiator import ContentType
from .tempstore import TemporaryStore

from .sword_logging import logging
log = logging.getLogger(__name__)

class Operation(object):
    """
    The outcome of classifying a request: which of the deposit or retrieval
    operations it is, along with anything extracted from the request which the
    endpoint needs to carry it out
    """
    RETRIEVE_RECEIPT = "retrieve_receipt"
    RETRIEVE_STATEMENT = "retrieve_statement"
    REPLACE_METADATA = "replace_metadata"
    ADD_METADATA = "add_metadata"
    USE_HEADERS = "use_headers"
    ADD_RESOURCES = "add_resources"
    DELETE_CONTAINER = "delete_container"
    RETRIEVE_MEDIA_RESOURCE = "retrieve_media_resource"
    REPLACE_MEDIA_RESOURCE = "replace_media_resource"
    ADD_MEDIA_RESOURCE = "add_media_resource"
    DELETE_MEDIA_RESOURCE = "delete_media_resource"

    KINDS = (RETRIEVE_RECEIPT, RETRIEVE_STATEMENT, REPLACE_METADATA, ADD_METADATA, USE_HEADERS, ADD_RESOURCES,
                DELETE_CONTAINER, RETRIEVE_MEDIA_RESOURCE, REPLACE_MEDIA_RESOURCE, ADD_MEDIA_RESOURCE,
                DELETE_MEDIA_RESOURCE)

    def __init__(self, kind, iri, accept_headers=None, deposit=None, send_body=True):
        if kind not in Operation.KINDS:
            raise ValueError("unknown operation: " + str(kind))
        self.kind = kind
        self.iri = iri
        self.accept_headers = accept_headers if accept_headers is not None else {}
        self.deposit = deposit
        self.send_body = send_body

    def __repr__(self):
        return "Operation(%s, %s, send_body=%s)" % (self.kind, self.iri, self.send_body)

class RequestClassifier(object):
    def __init__(self, config, temporary_store=None):
        self.config = config
        self.temporary_store = temporary_store if temporary_store is not None else TemporaryStore(config)
        self.h = HttpHeaders()

    # Container (Edit-IRI)
    ######################

    def classify_container(self, request, deposit, is_statement_request):
        """
        Work out what a request to the Edit-IRI is asking for.
        - is_statement_request: callable(iri, accept_headers) which decides
            between the Statement and the deposit receipt on GET/HEAD
        """
        iri = request.url
        method = request.method

        if method in ("GET", "HEAD"):
            accept = request.get_accept_headers()
            send_body = method == "GET"
            if is_statement_request(iri, accept):
                return Operation(Operation.RETRIEVE_STATEMENT, iri, accept_headers=accept, send_body=send_body)
            return Operation(Operation.RETRIEVE_RECEIPT, iri, accept_headers=accept, send_body=send_body)

        if method == "DELETE":
            return Operation(Operation.DELETE_CONTAINER, iri)

        content_type = request.content_type
        if method == "PUT":
            self._reject_multipart(content_type)
            self._add_properties_from_headers(request, deposit)
            if self._is_atom(content_type):
                if not self._is_entry(content_type):
                    raise SwordError(error_uri=Errors.bad_request,
                        msg="Content-Type must be 'application/atom+xml' or 'application/atom+xml;type=entry'")
                self._add_properties_from_entry(request, deposit)
                return Operation(Operation.REPLACE_METADATA, iri, deposit=deposit)
            raise SwordError(error_uri=Errors.bad_request, msg="PUT to Edit-IRI MUST be an Atom Entry")

        if method == "POST":
            self._reject_multipart(content_type)
            self._add_properties_from_headers(request, deposit)

            # an empty body is just providing instructions to the server (i.e. In-Progress is complete)
            if request.content_length == 0:
                log.info("Classified empty deposit (headers only)")
                return Operation(Operation.USE_HEADERS, iri, deposit=deposit)

            if self._is_atom(content_type):
                if not self._is_entry(content_type):
                    raise SwordError(error_uri=Errors.bad_request,
                        msg="Content-Type must be 'application/atom+xml' or 'application/atom+xml;type=entry'")
                self._add_properties_from_entry(request, deposit)
                return Operation(Operation.ADD_METADATA, iri, deposit=deposit)

            self._add_properties_from_binary(request, deposit)
            return Operation(Operation.ADD_RESOURCES, iri, deposit=deposit)

        raise SwordError(error_uri=Errors.method_not_allowed, msg=method + " is not supported on the Edit-IRI")

    # Media Resource (EM-IRI)
    #########################

    def classify_media_resource(self, request, deposit):
        iri = request.url
        method = request.method

        if method in ("GET", "HEAD"):
            return Operation(Operation.RETRIEVE_MEDIA_RESOURCE, iri, accept_headers=request.get_accept_headers(),
                                send_body=method == "GET")

        if method == "DELETE":
            return Operation(Operation.DELETE_MEDIA_RESOURCE, iri)

        if method in ("PUT", "POST"):
            self._reject_multipart(request.content_type)
            self._add_properties_from_headers(request, deposit)
            if method == "POST":
                # only adding to the media resource takes the Metadata-Relevant header
                deposit.metadata_relevant = self._get_boolean(request, HttpHeaders.metadata_relevant)
            self._add_properties_from_binary(request, deposit)
            kind = Operation.REPLACE_MEDIA_RESOURCE if method == "PUT" else Operation.ADD_MEDIA_RESOURCE
            return Operation(kind, iri, deposit=deposit)

        raise SwordError(error_uri=Errors.method_not_allowed, msg=method + " is not supported on the EM-IRI")

    # deposit extraction
    ####################

    def _reject_multipart(self, content_type):
        if content_type.lower().startswith("multipart/"):
            log.info("Rejecting multipart deposit")
            raise SwordError(error_uri=Errors.method_not_allowed,
                msg="This server does not support RFC2387 Multipart uploads, to be removed in SWORD v2.1")

    def _is_atom(self, content_type):
        ct = ContentType(content_type)
        return ct.type == "application" and ct.subtype == "atom+xml"

    def _is_entry(self, content_type):
        ct = ContentType(content_type)
        if ct.params is None:
            return True
        params = [p.replace(" ", "").lower() for p in ct.params.split(";")]
        return "type=entry" in params

    def _get_boolean(self, request, header):
        try:
            return self.h.get_boolean(request.headers, header)
        except ValueError as e:
            raise SwordError(error_uri=Errors.bad_request, msg=str(e))

    def _add_properties_from_headers(self, request, deposit):
        deposit.content_type = request.content_type
        deposit.in_progress = self._get_boolean(request, HttpHeaders.in_progress)
        deposit.slug = request.get_header(HttpHeaders.slug)
        deposit.content_md5 = request.get_header(HttpHeaders.content_md5)
        packaging = request.get_header(HttpHeaders.packaging)
        if packaging is not None and packaging.strip() != "":
            deposit.packaging = packaging.strip()

        content_length = request.content_length
        deposit.content_length = content_length if content_length is not None else 0

        max_size = self.config.max_upload_size
        if max_size is not None and max_size >= 0 and content_length is not None and content_length > max_size:
            raise SwordError(error_uri=Errors.max_upload_size_exceeded,
                                msg="Max upload size is " + str(max_size) +
                                "; incoming content length was " + str(content_length))

    def _add_properties_from_entry(self, request, deposit):
        if request.input_stream is None:
            raise SwordError(error_uri=Errors.bad_request, msg="No Atom Entry was supplied")
        log.info("Classified Entry deposit request")
        deposit.entry_document = EntryDocument(xml_source=request.input_stream.read())

    def _add_properties_from_binary(self, request, deposit):
        log.info("Classified Binary deposit request")
        deposit.filename = self.h.extract_filename(request.headers)
        if deposit.filename is None:
            raise SwordError(error_uri=Errors.bad_request,
                                msg="Filename could not be extracted from Content-Disposition")

        if request.input_stream is None:
            raise SwordError(error_uri=Errors.bad_request, msg="No content sent to the server")

        if not self.config.store_and_check_binary:
            # pass the request stream straight through to the manager
            deposit.input_stream = request.input_stream
            return

        digest = self.temporary_store.store(request.input_stream, deposit)
        if deposit.content_md5 is not None and not self._checksums_match(deposit.content_md5, digest):
            log.error("Checksum mismatch: client sent " + deposit.content_md5 + ", we calculated " + digest)
            raise SwordError(error_uri=Errors.checksum_mismatch,
                                msg="The checksum of the deposited content does not match the Content-MD5 header")

    def _checksums_match(self, supplied, digest):
        # clients send either the hex digest or the base64 of the raw digest (RFC 1864)
        supplied = supplied.strip()
        if supplied.lower() == digest:
            return True
        try:
            return base64.b64decode(supplied, validate=True) == binascii.unhexlify(digest)
        except (binascii.Error, ValueError):
            return False
