import hashlib
from datetime import datetime, timezone
from email.utils import format_datetime
from lxml import etree

from .core import SwordResponse, SwordServerException
from .protocol import Namespaces, UriRegistry

from .sword_logging import logging
log = logging.getLogger(__name__)

# HEADER VALUES
#######################################################################

def content_md5(body):
    """
    The hex md5 of the body exactly as it will be sent
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hashlib.md5(body).hexdigest()

def http_date(d=None):
    """
    Format the datetime for the Last-Modified header (RFC 1123).  Naive datetimes
    are taken to be UTC, and no datetime at all means now
    """
    if d is None:
        d = datetime.now(timezone.utc)
    elif d.tzinfo is None:
        d = d.replace(tzinfo=timezone.utc)
    else:
        d = d.astimezone(timezone.utc)
    return format_datetime(d, usegmt=True)

# RESPONSE ASSEMBLY
#######################################################################

class ResponseAssembler(object):
    """
    Turns the objects which come back from the managers into SwordResponses
    """
    def __init__(self, config):
        self.config = config
        self.ns = Namespaces()

    def render_receipt(self, receipt):
        """
        Serialise the deposit receipt to an atom:entry.  This works on a copy of
        the wrapped entry, so rendering the same receipt twice gives the same bytes
        """
        receipt.resolve_defaults()
        generator = self.config.get_generator()
        if generator is not None:
            receipt.set_generator(*generator)

        entry = receipt.get_wrapped_entry()

        if receipt.edit_iri is not None:
            for existing in entry.findall(self.ns.ATOM + "id"):
                entry.remove(existing)
            atom_id = etree.SubElement(entry, self.ns.ATOM + "id")
            atom_id.text = receipt.edit_iri
            self._link(entry, "edit", receipt.edit_iri)

        if receipt.se_iri is not None:
            self._link(entry, UriRegistry.rel_sword_edit, receipt.se_iri)

        if receipt.media_feed_iri is not None:
            self._link(entry, "edit-media", receipt.media_feed_iri, UriRegistry.feed_content_type)

        if receipt.edit_media_iri is not None:
            self._link(entry, "edit-media", receipt.edit_media_iri)

        for format in receipt.packaging:
            packaging = etree.SubElement(entry, self.ns.SWORD + "packaging")
            packaging.text = format

        for iri, media_type in receipt.statements.items():
            self._link(entry, UriRegistry.rel_statement, iri, media_type)

        treatment = etree.SubElement(entry, self.ns.SWORD + "treatment")
        treatment.text = receipt.treatment

        if receipt.verbose_description is not None:
            vd = etree.SubElement(entry, self.ns.SWORD + "verboseDescription")
            vd.text = receipt.verbose_description

        if receipt.splash_uri is not None:
            self._link(entry, "alternate", receipt.splash_uri)

        if receipt.original_deposit_uri is not None:
            self._link(entry, UriRegistry.rel_original_deposit, receipt.original_deposit_uri,
                        receipt.original_deposit_type)

        for iri, media_type in receipt.derived_resources.items():
            self._link(entry, UriRegistry.rel_derived_resource, iri, media_type)

        return etree.tostring(entry, pretty_print=True)

    def _link(self, entry, rel, href, media_type=None):
        link = etree.SubElement(entry, self.ns.ATOM + "link")
        link.set("rel", rel)
        if media_type is not None:
            link.set("type", media_type)
        link.set("href", href)
        return link

    def receipt_response(self, receipt, status=200, send_body=True):
        body = self.render_receipt(receipt)
        headers = {
            "Content-Type" : UriRegistry.entry_content_type,
            "Content-MD5" : content_md5(body),
            "Last-Modified" : http_date(receipt.last_modified)
        }
        if receipt.location is not None:
            headers["Location"] = receipt.location
        return SwordResponse(status=status, headers=headers, body=body if send_body else None)

    def statement_response(self, statement, send_body=True):
        body = statement.serialise()
        headers = {
            "Content-Type" : statement.content_type,
            "Content-MD5" : content_md5(body),
            "Last-Modified" : http_date(statement.last_modified)
        }
        return SwordResponse(status=200, headers=headers, body=body if send_body else None)

    def deposit_response(self, receipt, status=200, location_required=False, no_receipt_status=204):
        """
        The response to a successful deposit.  The receipt is only sent if the
        server is configured to return them and the manager didn't mark it empty;
        otherwise the client just gets the Location
        """
        if receipt is not None:
            receipt.resolve_defaults()
        location = receipt.location if receipt is not None else None
        if location_required and location is None:
            raise SwordServerException("The deposit receipt does not specify a Location")

        if receipt is not None and self.config.return_deposit_receipt and not receipt.empty:
            return self.receipt_response(receipt, status)
        return self.location_response(receipt, no_receipt_status)

    def location_response(self, receipt, status=204):
        headers = {}
        if receipt is not None:
            location = receipt.resolve_defaults().location
            if location is not None:
                headers["Location"] = location
        return SwordResponse(status=status, headers=headers)

    def media_resource_response(self, resource, send_body=True):
        headers = {}
        if not resource.unpackaged:
            headers["Packaging"] = resource.packaging if resource.packaging else UriRegistry.package_simple_zip
        headers["Content-Type"] = resource.content_type if resource.content_type else UriRegistry.default_content_type
        headers["Last-Modified"] = http_date(resource.last_modified)
        if resource.content_md5 is not None:
            headers["Content-MD5"] = resource.content_md5

        body = resource.input_stream
        if not send_body:
            if body is not None:
                body.close()
            body = None
        return SwordResponse(status=200, headers=headers, body=body)

    def error_response(self, sword_error):
        log.info("Returning error (" + str(sword_error.status) + ") - " + str(sword_error.error_uri))
        generator = self.config.get_generator()
        if generator is not None:
            body = sword_error.error_document(generator=generator)
        else:
            body = sword_error.error_document()
        return SwordResponse(status=sword_error.status, headers={"Content-Type" : UriRegistry.error_content_type},
                                body=body)

    # authentication failures never carry a body

    def challenge_response(self, realm):
        log.info("No auth header supplied; will return 401 with realm " + str(realm))
        return SwordResponse(status=401, headers={"WWW-Authenticate" : 'Basic realm="%s"' % realm})

    def bad_credentials_response(self):
        return SwordResponse(status=400)

    def forbidden_response(self):
        return SwordResponse(status=403)
