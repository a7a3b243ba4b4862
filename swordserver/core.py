import os, copy
from collections import namedtuple
from datetime import datetime, timezone
from lxml import etree

from .protocol import Namespaces, UriRegistry, Errors, HttpHeaders
from .negotiator import ContentNegotiator
from .info import __version__

from .sword_logging import logging
log = logging.getLogger(__name__)

# ERRORS
#######################################################################
# There are three kinds of failure which can reach the endpoints: a SwordError
# is a protocol level problem with a document to send back to the client, a
# SwordServerException is a fault in the server or one of its collaborators,
# and a SwordAuthException is a problem with the client's credentials

class SwordError(Exception):
    def __init__(self, error_uri=None, msg=None, status=None, verbose_description=None, author="SWORD", treatment=None):
        Exception.__init__(self, msg if msg is not None else error_uri)
        self.ns = Namespaces()
        self.emap = {"sword" : self.ns.SWORD_NS, "atom" : self.ns.ATOM_NS}

        self.error_uri = error_uri if error_uri is not None else Errors.bad_request
        self.status = status if status is not None else Errors().get_status(self.error_uri)
        self.msg = msg
        self.verbose_description = verbose_description
        self.author = author
        self.treatment = treatment

    def error_document(self, generator=("http://www.swordapp.org/", __version__)):
        entry = etree.Element(self.ns.SWORD + "error", nsmap=self.emap)
        entry.set("href", self.error_uri)

        ael = etree.SubElement(entry, self.ns.ATOM + "author")
        name = etree.SubElement(ael, self.ns.ATOM + "name")
        name.text = self.author

        title = etree.SubElement(entry, self.ns.ATOM + "title")
        title.text = "ERROR: " + self.error_uri

        # Date last updated (i.e. NOW)
        updated = etree.SubElement(entry, self.ns.ATOM + "updated")
        updated.text = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        # Generator - identifier for this server software
        if generator is not None:
            gen_uri, version = generator
            gen = etree.SubElement(entry, self.ns.ATOM + "generator")
            gen.set("uri", gen_uri)
            if version is not None:
                gen.set("version", version)

        summary = etree.SubElement(entry, self.ns.ATOM + "summary")
        summary.set("type", "text")
        text = "Error Description: " + self.error_uri
        if self.msg is not None:
            text += " ; " + self.msg
        summary.text = text

        treatment_el = etree.SubElement(entry, self.ns.SWORD + "treatment")
        treatment_el.text = self.treatment if self.treatment is not None else "processing failed"

        if self.verbose_description is not None:
            vb = etree.SubElement(entry, self.ns.SWORD + "verboseDescription")
            vb.text = self.verbose_description

        return etree.tostring(entry, pretty_print=True)

class SwordServerException(Exception):
    pass

class SwordAuthException(Exception):
    def __init__(self, msg=None, retry=False):
        Exception.__init__(self, msg)
        self.msg = msg
        self.retry = retry

class AuthCredentials(namedtuple("AuthCredentials", ["username", "password", "on_behalf_of"])):
    """
    The credentials extracted from a request.  These are never modified once the
    request has been authenticated
    """
    __slots__ = ()

    def __new__(cls, username=None, password=None, on_behalf_of=None):
        return super(AuthCredentials, cls).__new__(cls, username, password, on_behalf_of)

    @property
    def anonymous(self):
        return self.username is None

    def __repr__(self):
        return "AuthCredentials(username=%r, password=[**password**], on_behalf_of=%r)" % (self.username, self.on_behalf_of)

# REQUEST/RESPONSE CLASSES
#######################################################################
# These classes are the glue between the HTTP layer (see webpy.py) and the
# endpoints, allowing them to exchange messages agnostically to the transport

class SwordRequest(object):
    def __init__(self, method, url, headers=None, input_stream=None):
        self.method = method.upper()
        self.url = url
        # header names are case insensitive, so we hold them in lower case
        self.headers = dict([(k.lower(), v) for k, v in (headers or {}).items() if v is not None])
        self.input_stream = input_stream

    def get_header(self, name, default=None):
        return self.headers.get(name.lower(), default)

    @property
    def content_type(self):
        ct = self.get_header(HttpHeaders.content_type)
        if ct is None or ct.strip() == "":
            return UriRegistry.default_content_type
        return ct.strip()

    @property
    def content_length(self):
        """
        The declared Content-Length, or None if the client didn't send one
        """
        cl = self.get_header(HttpHeaders.content_length)
        if cl is None or str(cl).strip() == "":
            return None
        try:
            return int(cl)
        except ValueError:
            raise SwordError(error_uri=Errors.bad_request, msg="Content-Length must be an integer")

    def get_accept_headers(self):
        """
        All of the Accept-* headers, which are the subject of content negotiation
        """
        return dict([(k, v) for k, v in self.headers.items() if k.startswith(HttpHeaders.accept)])

class SwordResponse(object):
    def __init__(self, status=200, headers=None, body=None):
        self.status = status
        self.headers = headers if headers is not None else {}
        self.body = body

    def header(self, name):
        for k, v in self.headers.items():
            if k.lower() == name.lower():
                return v
        return None

    def __repr__(self):
        return "SwordResponse(%s, %r)" % (self.status, self.headers)

# SUBMITTED DOCUMENTS
#######################################################################

class EntryDocument(object):
    """
    An Atom Entry as supplied by the client on a metadata deposit.  We only read
    these; the outgoing entry is the DepositReceipt
    """
    def __init__(self, xml_source=None):
        self.ns = Namespaces()

        self.atom_id = None
        self.title = None
        self.summary = None
        self.updated = None
        self.generator = None
        self.alternate_uri = None
        self.content_uri = None
        self.edit_uri = None
        self.se_uri = None
        self.em_uris = []
        self.packaging = []
        self.treatment = None
        self.verbose_description = None
        self.dc_metadata = {}
        self.other_metadata = []
        self.links = {}

        self.dom = None
        if xml_source is not None:
            self._load(xml_source)

    def _load(self, xml_source):
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        try:
            self.dom = etree.fromstring(xml_source, parser)
        except (etree.XMLSyntaxError, ValueError) as e:
            # lxml raises ValueError for str input carrying an encoding declaration
            log.error("Was not able to parse the Entry Document as XML: " + str(e))
            raise SwordError(error_uri=Errors.bad_request, msg="Unable to parse the Atom Entry: " + str(e))

        if self.dom.tag != self.ns.ATOM + "entry":
            raise SwordError(error_uri=Errors.bad_request, msg="Metadata deposits must be an atom:entry")

        for element in self.dom:
            # skip comments and processing instructions
            if not isinstance(element.tag, str):
                continue
            field = self._canonical_tag(element.tag)
            text = element.text.strip() if element.text is not None else None
            log.debug("Attempting to intepret field: '%s'" % field)
            if field == "atom_id" and text is not None:
                self.atom_id = text
            elif field == "atom_title" and text is not None:
                self.title = text
            elif field == "atom_summary" and text is not None:
                self.summary = text
            elif field == "atom_updated" and text is not None:
                try:
                    self.updated = datetime.strptime(text, "%Y-%m-%dT%H:%M:%SZ")
                except ValueError:
                    log.info("Unable to parse updated time: " + text)
            elif field == "atom_link":
                self._handle_link(element)
            elif field == "atom_content":
                self.content_uri = element.get("src")
            elif field == "atom_generator":
                self.generator = (element.get("uri"), element.get("version"))
            elif field == "sword_packaging" and text is not None:
                self.packaging.append(text)
            elif field == "sword_verboseDescription" and text is not None:
                self.verbose_description = text
            elif field == "sword_treatment" and text is not None:
                self.treatment = text
            elif field.startswith("dcterms_") and text is not None:
                self.dc_metadata.setdefault(field[8:], []).append(text)
            else:
                # anything we don't know about is kept as foreign markup
                self.other_metadata.append(element)

    def _canonical_tag(self, tag):
        if not tag.startswith("{"):
            return tag
        ns, field = tag[1:].rsplit("}", 1)
        prefix = self.ns.prefix.get(ns, ns)
        return prefix + "_" + field

    def _handle_link(self, e):
        rel = e.get("rel")
        if not rel:
            return
        href = e.get("href")
        if rel == "edit":
            self.edit_uri = href
        elif rel == "edit-media":
            self.em_uris.append((href, e.get("type")))
        elif rel == UriRegistry.rel_sword_edit:
            self.se_uri = href
        elif rel == "alternate":
            self.alternate_uri = href

        attribs = dict([(k, v) for k, v in e.attrib.items() if k != "rel"])
        self.links.setdefault(rel, []).append(attribs)

class Deposit(object):
    """
    Class to represent an incoming deposit.  A Deposit belongs to exactly one
    request, and any temporary files created while buffering its payload are
    removed when the request is over.  Use it as a context manager:

        with Deposit() as deposit:
            ...

    and cleanup will happen exactly once whichever way the block exits
    """
    def __init__(self):
        self.input_stream = None
        self.content_type = None
        self.packaging = UriRegistry.package_binary # if this isn't populated externally, use the default
        self.content_length = 0
        self.content_md5 = None
        self.slug = None
        self.filename = None
        self.in_progress = False
        self.metadata_relevant = False
        self.entry_document = None
        self.temporary_files = []
        self._cleaned_up = False

    def is_entry_only(self):
        return self.entry_document is not None and self.input_stream is None

    def is_binary_only(self):
        return self.entry_document is None and self.input_stream is not None

    def is_empty(self):
        return self.entry_document is None and self.input_stream is None

    def add_temporary_file(self, path):
        self.temporary_files.append(path)

    def cleanup(self):
        if self._cleaned_up:
            return
        self._cleaned_up = True

        if self.input_stream is not None:
            self.input_stream.close()
            self.input_stream = None

        for path in self.temporary_files:
            log.debug("Removing temporary file " + path)
            try:
                os.remove(path)
            except FileNotFoundError:
                log.debug("Temporary file " + path + " was already removed")
        self.temporary_files = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.cleanup()
        return False

class DepositReceipt(object):
    """
    The fields of a deposit receipt, as returned by the managers.  The response
    assembler turns this into the Atom Entry which is sent to the client.

    Collaborators which want to add other content to the receipt (dublin core,
    atom:content, additional links) can do so directly on the wrapped entry via
    the add_* methods
    """
    DEFAULT_TREATMENT = "no treatment information available"

    def __init__(self, edit_iri=None, se_iri=None, edit_media_iri=None, media_feed_iri=None, location=None,
                    packaging=None, statements=None, treatment=None, verbose_description=None,
                    splash_uri=None, original_deposit_uri=None, original_deposit_type=None,
                    derived_resources=None, empty=False, last_modified=None, nsmap=None):
        self.ns = Namespaces()
        self.drmap = {None: self.ns.ATOM_NS, "sword" : self.ns.SWORD_NS, "dcterms" : self.ns.DC_NS}
        if nsmap is not None:
            self.drmap = nsmap
        self.entry = etree.Element(self.ns.ATOM + "entry", nsmap=self.drmap)

        self.edit_iri = edit_iri
        self.se_iri = se_iri
        self.edit_media_iri = edit_media_iri
        self.media_feed_iri = media_feed_iri
        self.location = location
        self.packaging = packaging if packaging is not None else []
        self.statements = statements if statements is not None else {}
        self.treatment = treatment
        self.verbose_description = verbose_description
        self.splash_uri = splash_uri
        self.original_deposit_uri = original_deposit_uri
        self.original_deposit_type = original_deposit_type
        self.derived_resources = derived_resources if derived_resources is not None else {}
        self.empty = empty
        self.last_modified = last_modified

    def resolve_defaults(self):
        """
        Fill in the fields which default to other fields.  The Edit-IRI and
        SE-IRI identify the same resource, so if only one is known it is used
        for both; two explicitly set values are left alone
        """
        if self.se_iri is None:
            self.se_iri = self.edit_iri
        if self.edit_iri is None:
            self.edit_iri = self.se_iri
        if self.location is None:
            self.location = self.edit_iri
        if self.treatment is None:
            self.treatment = DepositReceipt.DEFAULT_TREATMENT
        return self

    def add_packaging(self, packaging_format):
        self.packaging.append(packaging_format)

    def set_statement_uri(self, media_type, iri):
        self.statements[iri] = media_type

    def set_ore_statement_uri(self, iri):
        self.set_statement_uri(UriRegistry.ore_content_type, iri)

    def set_atom_statement_uri(self, iri):
        self.set_statement_uri(UriRegistry.feed_content_type, iri)

    def set_original_deposit(self, iri, media_type=None):
        self.original_deposit_uri = iri
        self.original_deposit_type = media_type

    def add_derived_resource(self, iri, media_type=None):
        self.derived_resources[iri] = media_type

    # operations directly on the wrapped entry

    def add_simple_extension(self, tag, value):
        el = etree.SubElement(self.entry, tag)
        el.text = value
        return el

    def add_dublin_core(self, element, value):
        return self.add_simple_extension(self.ns.DC + element, value)

    def set_content(self, href, media_type):
        content = self.entry.find(self.ns.ATOM + "content")
        if content is None:
            content = etree.SubElement(self.entry, self.ns.ATOM + "content")
        content.set("type", media_type)
        content.set("src", href)

    def add_edit_media_iri(self, href, media_type=None):
        link = etree.SubElement(self.entry, self.ns.ATOM + "link")
        link.set("rel", "edit-media")
        if media_type is not None:
            link.set("type", media_type)
        link.set("href", href)
        return link

    def add_edit_media_feed_iri(self, href):
        return self.add_edit_media_iri(href, UriRegistry.feed_content_type)

    def set_generator(self, uri, version=None):
        for existing in self.entry.findall(self.ns.ATOM + "generator"):
            self.entry.remove(existing)
        gen = etree.SubElement(self.entry, self.ns.ATOM + "generator")
        gen.set("uri", uri)
        if version is not None:
            gen.set("version", version)

    def get_wrapped_entry(self):
        return copy.deepcopy(self.entry)

class MediaResource(object):
    """
    Class to represent the response to a request to retrieve the Media Resource
    """
    def __init__(self, input_stream=None, content_type=None, packaging=None, unpackaged=False,
                    content_md5=None, last_modified=None):
        """
        Properties:
        input_stream    -   file-like object from which the content can be read
        content_type    -   the mimetype of the content
        packaging       -   the packaging format; empty means SimpleZip for packaged content
        unpackaged      -   True if this is a single file, in which case there is no Packaging header
        """
        self.input_stream = input_stream
        self.content_type = content_type
        self.packaging = packaging
        self.unpackaged = unpackaged
        self.content_md5 = content_md5
        self.last_modified = last_modified

# COLLABORATORS
#######################################################################
# These are the interfaces which the endpoints call out to.  Implementations
# are plugged in directly or via the configuration

class Authenticator(object):
    def __init__(self, config):
        self.config = config

    def basic_authenticate(self, credentials):
        """
        Check the supplied AuthCredentials against the identity store.  Raise a
        SwordAuthException if they are rejected
        """
        raise NotImplementedError()

class ContainerManager(object):
    def __init__(self, config=None):
        self.config = config

    def get_entry(self, edit_iri, accept_headers, auth, config):
        """
        Get the DepositReceipt describing the container at the Edit-IRI
        """
        raise NotImplementedError()

    def replace_metadata(self, edit_iri, deposit, auth, config):
        raise NotImplementedError()

    def add_metadata(self, edit_iri, deposit, auth, config):
        raise NotImplementedError()

    def add_resources(self, edit_iri, deposit, auth, config):
        raise NotImplementedError()

    def use_headers(self, edit_iri, deposit, auth, config):
        """
        Act on a deposit which carries no content, only headers (e.g. In-Progress)
        """
        raise NotImplementedError()

    def delete_container(self, edit_iri, auth, config):
        raise NotImplementedError()

    def is_statement_request(self, edit_iri, accept_headers, auth, config):
        """
        Decide whether the client wants the Statement rather than the deposit
        receipt.  By default we negotiate over the configured container formats
        and anything other than an atom entry is a request for the Statement
        """
        default_params, acceptable = config.get_container_formats()
        cn = ContentNegotiator(default_params, acceptable)
        accept_parameters = cn.negotiate(accept=accept_headers.get(HttpHeaders.accept))
        log.info("Container requested in format: " + str(accept_parameters))
        if accept_parameters is None:
            raise SwordError(error_uri=Errors.content, msg="Unable to supply the container in any of the requested formats")
        return accept_parameters.content_type.mimetype() != UriRegistry.entry_content_type

class MediaResourceManager(object):
    def __init__(self, config=None):
        self.config = config

    def get_media_resource_representation(self, edit_media_iri, accept_headers, auth, config):
        """
        Return a MediaResource for the content at the EM-IRI
        """
        raise NotImplementedError()

    def replace_media_resource(self, edit_media_iri, deposit, auth, config):
        raise NotImplementedError()

    def add_resource(self, edit_media_iri, deposit, auth, config):
        raise NotImplementedError()

    def delete_media_resource(self, edit_media_iri, auth, config):
        raise NotImplementedError()

class StatementManager(object):
    def __init__(self, config=None):
        self.config = config

    def get_statement(self, iri, accept_headers, auth, config):
        """
        Return a Statement (see statement.py) for the container
        """
        raise NotImplementedError()
