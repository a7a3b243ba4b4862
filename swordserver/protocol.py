# FIXME: these are all just constants, so consider replacing the objects with
# module level dictionaries

from .sword_logging import logging
log = logging.getLogger(__name__)

class Namespaces(object):
    """
    This class encapsulates all the namespace declarations that we will need
    """
    def __init__(self):
        # Atom namespace and lxml format
        self.ATOM_NS = "http://www.w3.org/2005/Atom"
        self.ATOM = "{%s}" % self.ATOM_NS
        self.ATOM_PREFIX = "atom"

        # SWORD namespace and lxml format
        self.SWORD_NS = "http://purl.org/net/sword/terms/"
        self.SWORD = "{%s}" % self.SWORD_NS
        self.SWORD_PREFIX = "sword"

        # SWORD State Scheme
        self.SWORD_STATE = self.SWORD_NS + "state"

        # Dublin Core namespace and lxml format
        self.DC_NS = "http://purl.org/dc/terms/"
        self.DC = "{%s}" % self.DC_NS
        self.DC_PREFIX = "dcterms"

        # RDF namespace and lxml format
        self.RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
        self.RDF = "{%s}" % self.RDF_NS
        self.RDF_PREFIX = "rdf"

        # ORE namespace and lxml format
        self.ORE_NS = "http://www.openarchives.org/ore/terms/"
        self.ORE = "{%s}" % self.ORE_NS
        self.ORE_PREFIX = "ore"

        # lookup dictionary
        self.prefix = {
            self.ATOM_NS : self.ATOM_PREFIX,
            self.SWORD_NS : self.SWORD_PREFIX,
            self.DC_NS : self.DC_PREFIX,
            self.RDF_NS : self.RDF_PREFIX,
            self.ORE_NS : self.ORE_PREFIX
        }

class UriRegistry(object):
    # link relations
    rel_sword_edit = "http://purl.org/net/sword/terms/add"
    rel_statement = "http://purl.org/net/sword/terms/statement"
    rel_original_deposit = "http://purl.org/net/sword/terms/originalDeposit"
    rel_derived_resource = "http://purl.org/net/sword/terms/derivedResource"

    # packaging formats
    package_simple_zip = "http://purl.org/net/sword/package/SimpleZip"
    package_binary = "http://purl.org/net/sword/package/Binary"

    # media types
    entry_content_type = "application/atom+xml;type=entry"
    feed_content_type = "application/atom+xml;type=feed"
    ore_content_type = "application/rdf+xml"
    error_content_type = "text/xml"
    default_content_type = "application/octet-stream"

class Errors(object):
    content = "http://purl.org/net/sword/error/ErrorContent"
    checksum_mismatch = "http://purl.org/net/sword/error/ErrorChecksumMismatch"
    bad_request = "http://purl.org/net/sword/error/ErrorBadRequest"
    target_owner_unknown = "http://purl.org/net/sword/error/TargetOwnerUnknown"
    mediation_not_allowed = "http://purl.org/net/sword/error/MediationNotAllowed"
    method_not_allowed = "http://purl.org/net/sword/error/MethodNotAllowed"
    max_upload_size_exceeded = "http://purl.org/net/sword/error/MaxUploadSizeExceeded"

    statuses = {
        content : 415,
        checksum_mismatch: 412,
        bad_request: 400,
        target_owner_unknown: 403,
        mediation_not_allowed : 412,
        method_not_allowed: 405,
        max_upload_size_exceeded: 413
    }

    def get_status(self, uri):
        status = Errors.statuses.get(uri)
        return status if status is not None else 400

class HttpHeaders(object):
    accept = "accept"
    authorization = "authorization"
    content_type = "content-type"
    content_disposition = "content-disposition"
    content_md5 = "content-md5"
    content_length = "content-length"
    packaging = "packaging"
    in_progress = "in-progress"
    on_behalf_of = "on-behalf-of"
    metadata_relevant = "metadata-relevant"
    slug = "slug"

    allowed_values = {
        in_progress : ["true", "false"],
        metadata_relevant : ["true", "false"]
    }

    def is_allowed_value(self, header, value):
        header = header.lower()
        if header in HttpHeaders.allowed_values:
            return value.strip().lower() in HttpHeaders.allowed_values[header]
        return True

    def get_boolean(self, header_dict, header):
        """
        Read one of the true/false headers (In-Progress, Metadata-Relevant).  An
        absent header is False; anything other than true or false is an error
        """
        value = header_dict.get(header)
        if value is None:
            return False
        if not self.is_allowed_value(header, value):
            log.error(header + " had value (" + value + "), which is not an allowed value")
            raise ValueError(header + " MUST be 'true' or 'false'")
        return value.strip().lower() == "true"

    def extract_filename(self, header_dict):
        """ get the filename out of the content disposition header """
        cd = header_dict.get(HttpHeaders.content_disposition)
        if cd is None:
            return None
        log.debug("Extracting filename from " + HttpHeaders.content_disposition + " " + str(cd))
        for part in cd.split(";"):
            part = part.strip()
            if part.lower().startswith("filename="):
                filename = part[len("filename="):].strip().strip('"')
                return filename if filename != "" else None
        return None
