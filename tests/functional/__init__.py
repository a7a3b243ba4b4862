import os, io, base64, shutil, tempfile
from datetime import datetime

from swordserver import (Configuration, SwordRequest, SwordAuthException, DepositReceipt, MediaResource, AtomStatement,
                            Authenticator, ContainerManager, MediaResourceManager, StatementManager, UriRegistry)

EDIT_IRI = "http://localhost:8080/edit-uri/1234"
EM_IRI = "http://localhost:8080/em-uri/1234"
STATEMENT_IRI = "http://localhost:8080/state-uri/1234"

ENTRY = b"""<?xml version="1.0" encoding="utf-8"?>
<entry xmlns="http://www.w3.org/2005/Atom"
        xmlns:dcterms="http://purl.org/dc/terms/"
        xmlns:sword="http://purl.org/net/sword/terms/">
    <title>Title</title>
    <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
    <updated>2005-07-13T18:30:02Z</updated>
    <author><name>jbloggs</name></author>
    <summary type="text">The abstract</summary>
    <dcterms:abstract>The abstract</dcterms:abstract>
    <dcterms:creator>Bloggs, J</dcterms:creator>
    <dcterms:creator>Smith, A</dcterms:creator>
    <sword:packaging>http://purl.org/net/sword/package/METSDSpaceSIP</sword:packaging>
    <link rel="edit" href="http://localhost:8080/edit-uri/1234"/>
</entry>
"""

# COLLABORATORS
#######################################################################
# In-memory managers which record what the endpoints asked of them

class MockAuthenticator(Authenticator):
    def basic_authenticate(self, credentials):
        if credentials.password != "sword":
            raise SwordAuthException(msg="incorrect password for " + credentials.username)
        if credentials.on_behalf_of == "nobody":
            raise SwordAuthException(msg="unknown on-behalf-of user")

class MockManager(object):
    def __init__(self, config=None, receipt=None, error=None):
        self.config = config
        self.receipt = receipt
        self.error = error
        self.calls = []
        self.deposits = []
        self.content = None

    def _call(self, name, iri, auth, deposit=None, result=None):
        self.calls.append((name, iri, auth))
        if deposit is not None:
            self.deposits.append(deposit)
            # read the content now, because it is gone once the request is over
            if deposit.input_stream is not None:
                self.content = deposit.input_stream.read()
        if self.error is not None:
            raise self.error
        return result if result is not None else self.receipt

class MockContainerManager(MockManager, ContainerManager):
    def get_entry(self, edit_iri, accept_headers, auth, config):
        self.accept_headers = accept_headers
        return self._call("get_entry", edit_iri, auth)

    def replace_metadata(self, edit_iri, deposit, auth, config):
        return self._call("replace_metadata", edit_iri, auth, deposit)

    def add_metadata(self, edit_iri, deposit, auth, config):
        return self._call("add_metadata", edit_iri, auth, deposit)

    def add_resources(self, edit_iri, deposit, auth, config):
        return self._call("add_resources", edit_iri, auth, deposit)

    def use_headers(self, edit_iri, deposit, auth, config):
        return self._call("use_headers", edit_iri, auth, deposit)

    def delete_container(self, edit_iri, auth, config):
        return self._call("delete_container", edit_iri, auth)

class MockMediaResourceManager(MockManager, MediaResourceManager):
    def __init__(self, config=None, receipt=None, error=None, resource=None):
        MockManager.__init__(self, config, receipt, error)
        self.resource = resource

    def get_media_resource_representation(self, edit_media_iri, accept_headers, auth, config):
        return self._call("get_media_resource_representation", edit_media_iri, auth, result=self.resource)

    def replace_media_resource(self, edit_media_iri, deposit, auth, config):
        return self._call("replace_media_resource", edit_media_iri, auth, deposit)

    def add_resource(self, edit_media_iri, deposit, auth, config):
        return self._call("add_resource", edit_media_iri, auth, deposit)

    def delete_media_resource(self, edit_media_iri, auth, config):
        return self._call("delete_media_resource", edit_media_iri, auth)

class MockStatementManager(MockManager, StatementManager):
    def __init__(self, config=None, statement=None, error=None):
        MockManager.__init__(self, config, error=error)
        self.statement = statement

    def get_statement(self, iri, accept_headers, auth, config):
        return self._call("get_statement", iri, auth, result=self.statement)

# BASE TEST CLASS
#######################################################################

class TestController(object):
    def setup_method(self, method):
        self.tmp = tempfile.mkdtemp(prefix="swordserver-test-")
        self.config = Configuration(config_file=os.path.join(self.tmp, "swordserver.conf.json"))
        self.config.temp_directory = self.tmp

    def teardown_method(self, method):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def temporary_files(self):
        return [f for f in os.listdir(self.tmp) if f.startswith("sword-")]

    def basic_auth(self, username="sword", password="sword"):
        return "Basic " + base64.b64encode((username + ":" + password).encode("utf-8")).decode("ascii")

    def request(self, method, url=EDIT_IRI, headers=None, body=None, authenticated=True):
        h = {}
        if authenticated:
            h["Authorization"] = self.basic_auth()
        if body is not None:
            h["Content-Length"] = str(len(body))
        h.update(headers or {})
        return SwordRequest(method, url, h, io.BytesIO(body) if body is not None else None)

    def binary_request(self, method, url=EM_IRI, body=b"binary content", headers=None, **kwargs):
        h = {
            "Content-Type" : "application/zip",
            "Content-Disposition" : "attachment; filename=example.zip",
            "Packaging" : UriRegistry.package_simple_zip
        }
        h.update(headers or {})
        return self.request(method, url, h, body, **kwargs)

    def receipt(self, **kwargs):
        args = {
            "edit_iri" : EDIT_IRI,
            "edit_media_iri" : EM_IRI,
            "last_modified" : datetime(2011, 3, 2, 20, 50, 32)
        }
        args.update(kwargs)
        return DepositReceipt(**args)

    def statement(self):
        s = AtomStatement(aggregation_uri="http://localhost:8080/agg-uri/1234", rem_uri=STATEMENT_IRI,
                            last_modified=datetime(2011, 3, 2, 20, 50, 32))
        s.set_state("http://purl.org/net/sword/state/inProgress", "the deposit is in progress")
        return s

    def media_resource(self, content=b"zipped content", **kwargs):
        args = {
            "content_type" : "application/zip",
            "last_modified" : datetime(2011, 3, 2, 20, 50, 32)
        }
        args.update(kwargs)
        return MediaResource(io.BytesIO(content), **args)
