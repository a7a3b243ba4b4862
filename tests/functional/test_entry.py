import io, os
import pytest
from lxml import etree

from . import TestController, ENTRY, EDIT_IRI, EM_IRI

from swordserver import EntryDocument, DepositReceipt, Deposit, SwordError, AuthCredentials, Errors

ATOM = "{http://www.w3.org/2005/Atom}"
SWORD = "{http://purl.org/net/sword/terms/}"
DC = "{http://purl.org/dc/terms/}"

class TestEntry(TestController):
    def test_01_blank_init(self):
        e = EntryDocument()

        # check a couple of things for emptyness
        assert e.atom_id is None
        assert e.other_metadata is not None
        assert len(e.other_metadata) == 0
        assert e.dc_metadata is not None
        assert len(e.dc_metadata) == 0

    def test_02_parse_entry(self):
        e = EntryDocument(ENTRY)

        assert e.atom_id == "urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a"
        assert e.title == "Title"
        assert e.summary == "The abstract"
        assert e.updated.year == 2005
        assert e.edit_uri == EDIT_IRI
        assert e.packaging == ["http://purl.org/net/sword/package/METSDSpaceSIP"]
        assert e.dc_metadata["abstract"] == ["The abstract"]
        assert e.dc_metadata["creator"] == ["Bloggs, J", "Smith, A"]

        # atom:author is not something we interpret
        assert len(e.other_metadata) == 1
        assert e.other_metadata[0].tag == ATOM + "author"

    def test_03_parse_links(self):
        xml = b"""<entry xmlns="http://www.w3.org/2005/Atom">
            <link rel="edit-media" href="http://em/1" type="application/zip"/>
            <link rel="edit-media" href="http://em/2"/>
            <link rel="http://purl.org/net/sword/terms/add" href="http://se/"/>
            <link rel="alternate" href="http://splash/"/>
            <content src="http://content/" type="application/zip"/>
        </entry>"""
        e = EntryDocument(xml)
        assert e.em_uris == [("http://em/1", "application/zip"), ("http://em/2", None)]
        assert e.se_uri == "http://se/"
        assert e.alternate_uri == "http://splash/"
        assert e.content_uri == "http://content/"
        assert len(e.links["edit-media"]) == 2

    def test_04_malformed_entry(self):
        with pytest.raises(SwordError) as exc:
            EntryDocument(b"<entry xmlns='http://www.w3.org/2005/Atom'><title>unclosed</entry>")
        assert exc.value.status == 400
        assert exc.value.error_uri == Errors.bad_request

        # a str source may not carry an encoding declaration
        with pytest.raises(SwordError) as exc:
            EntryDocument("<?xml version='1.0' encoding='UTF-8'?><entry xmlns='http://www.w3.org/2005/Atom'/>")
        assert exc.value.status == 400

    def test_05_not_an_entry(self):
        with pytest.raises(SwordError) as exc:
            EntryDocument(b"<feed xmlns='http://www.w3.org/2005/Atom'/>")
        assert exc.value.status == 400

    # Deposit Receipt
    #################

    def test_06_receipt_defaults(self):
        dr = DepositReceipt()
        assert dr.treatment is None
        assert dr.packaging == []
        assert dr.statements == {}
        assert not dr.empty

        dr.resolve_defaults()
        assert dr.treatment == "no treatment information available"
        assert dr.location is None

    def test_07_receipt_edit_aliases_sword_edit(self):
        dr = DepositReceipt(edit_iri=EDIT_IRI).resolve_defaults()
        assert dr.se_iri == EDIT_IRI
        assert dr.location == EDIT_IRI

        dr = DepositReceipt(se_iri="http://se/").resolve_defaults()
        assert dr.edit_iri == "http://se/"
        assert dr.location == "http://se/"

        # two explicit values are left alone
        dr = DepositReceipt(edit_iri=EDIT_IRI, se_iri="http://se/", location="http://location/").resolve_defaults()
        assert dr.edit_iri == EDIT_IRI
        assert dr.se_iri == "http://se/"
        assert dr.location == "http://location/"

    def test_08_receipt_setters(self):
        dr = DepositReceipt(edit_iri=EDIT_IRI)
        dr.add_packaging("http://package/1")
        dr.add_packaging("http://package/2")
        dr.set_atom_statement_uri("http://statement/atom")
        dr.set_ore_statement_uri("http://statement/ore")
        dr.set_original_deposit("http://od/", "application/zip")
        dr.add_derived_resource("http://derived/1", "text/plain")

        # setting a field never backfills another
        assert dr.se_iri is None
        assert dr.packaging == ["http://package/1", "http://package/2"]
        assert dr.statements["http://statement/atom"] == "application/atom+xml;type=feed"
        assert dr.statements["http://statement/ore"] == "application/rdf+xml"
        assert dr.original_deposit_uri == "http://od/"
        assert dr.original_deposit_type == "application/zip"
        assert dr.derived_resources == {"http://derived/1" : "text/plain"}

    def test_09_receipt_wrapped_entry(self):
        dr = DepositReceipt(edit_iri=EDIT_IRI)
        dr.add_dublin_core("title", "My Title")
        dr.set_content(EM_IRI, "application/zip")
        dr.add_edit_media_feed_iri(EM_IRI + ".atom")
        dr.set_generator("http://generator/", "1.0")
        dr.set_generator("http://generator/", "2.0")

        entry = dr.get_wrapped_entry()
        assert entry.find(DC + "title").text == "My Title"
        assert entry.find(ATOM + "content").get("src") == EM_IRI
        assert entry.find(ATOM + "content").get("type") == "application/zip"
        generators = entry.findall(ATOM + "generator")
        assert len(generators) == 1
        assert generators[0].get("version") == "2.0"

        feeds = [l for l in entry.findall(ATOM + "link") if l.get("rel") == "edit-media"]
        assert len(feeds) == 1
        assert feeds[0].get("href") == EM_IRI + ".atom"
        assert feeds[0].get("type") == "application/atom+xml;type=feed"

        # the wrapped entry is a copy
        etree.SubElement(entry, DC + "creator")
        assert dr.entry.find(DC + "creator") is None

    # Deposit
    #########

    def test_10_deposit_cleanup(self):
        path = os.path.join(self.tmp, "sword-artifact")
        with open(path, "wb") as f:
            f.write(b"data")

        stream = io.BytesIO(b"content")
        with Deposit() as d:
            d.input_stream = stream
            d.add_temporary_file(path)
            assert d.is_binary_only()

        assert stream.closed
        assert not os.path.exists(path)
        assert d.temporary_files == []

        # a second cleanup has nothing left to do
        d.cleanup()

    def test_11_deposit_cleanup_on_error(self):
        path = os.path.join(self.tmp, "sword-artifact")
        with open(path, "wb") as f:
            f.write(b"data")

        with pytest.raises(ValueError):
            with Deposit() as d:
                d.add_temporary_file(path)
                raise ValueError("boom")
        assert not os.path.exists(path)

    def test_12_deposit_shape(self):
        d = Deposit()
        assert d.is_empty()
        assert d.packaging == "http://purl.org/net/sword/package/Binary"
        assert not d.in_progress
        assert not d.metadata_relevant

        d.entry_document = EntryDocument(ENTRY)
        assert d.is_entry_only()

    # Errors and credentials
    ########################

    def test_13_error_document(self):
        e = SwordError(error_uri=Errors.checksum_mismatch, msg="checksums differ", verbose_description="details")
        assert e.status == 412

        doc = etree.fromstring(e.error_document())
        assert doc.tag == SWORD + "error"
        assert doc.get("href") == Errors.checksum_mismatch
        assert "checksums differ" in doc.find(ATOM + "summary").text
        assert doc.find(SWORD + "verboseDescription").text == "details"
        assert doc.find(ATOM + "generator").get("uri") == "http://www.swordapp.org/"

    def test_14_error_statuses(self):
        assert SwordError(error_uri=Errors.content).status == 415
        assert SwordError(error_uri=Errors.bad_request).status == 400
        assert SwordError(error_uri=Errors.target_owner_unknown).status == 403
        assert SwordError(error_uri=Errors.mediation_not_allowed).status == 412
        assert SwordError(error_uri=Errors.method_not_allowed).status == 405
        assert SwordError(error_uri=Errors.max_upload_size_exceeded).status == 413
        assert SwordError(error_uri="http://unknown/").status == 400
        assert SwordError(error_uri=Errors.bad_request, status=404).status == 404

    def test_15_credentials(self):
        auth = AuthCredentials("sword", "secret", "obo")
        assert not auth.anonymous
        assert "secret" not in repr(auth)
        assert AuthCredentials().anonymous
        with pytest.raises(AttributeError):
            auth.username = "other"
