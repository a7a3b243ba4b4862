from lxml import etree

from .protocol import Namespaces, UriRegistry

from .sword_logging import logging
log = logging.getLogger(__name__)

class Statement(object):
    """
    Class representing the Statement; a description of the object as it appears on the server.  Subclasses
    provide the serialisation (see AtomStatement and OREStatement)
    """
    content_type = None

    def __init__(self, aggregation_uri=None, rem_uri=None, original_deposits=None, aggregates=None, states=None,
                    last_modified=None):
        """
        The statement has 5 important properties:
        - aggregation_uri   -   The URI of the aggregation in ORE terms
        - rem_uri           -   The URI of the Resource Map in ORE terms
        - original_deposits -   The list of original packages uploaded to the server (set with original_deposit())
        - aggregates        -   the non-original deposit files associated with the item
        - states            -   list of (state uri, state description) tuples
        """
        self.aggregation_uri = aggregation_uri
        self.rem_uri = rem_uri
        self.original_deposits = original_deposits if original_deposits is not None else []
        self.aggregates = aggregates if aggregates is not None else []
        self.states = states if states is not None else []
        self.last_modified = last_modified
        self.ns = Namespaces()

    def __str__(self):
        return str(self.aggregation_uri) + ", " + str(self.rem_uri) + ", " + str(self.original_deposits)

    def add_state(self, state, state_description):
        self.states.append((state, state_description))

    def set_state(self, state, state_description):
        self.states = [(state, state_description)]

    def original_deposit(self, uri, deposit_time, packaging_format, by, obo=None):
        """
        Add an original deposit to the statement
        Args:
        - uri:  The URI to the original deposit
        - deposit_time:     When the deposit was originally made
        - packaging_format:     The package format of the deposit, as supplied in the Packaging header
        - by:   the user who made the deposit
        - obo:  the user the deposit was made on behalf of
        """
        log.debug("Adding original deposit to Statement: " + uri)
        self.original_deposits.append((uri, deposit_time, packaging_format, by, obo))

    def add_normalised_aggregations(self, aggs):
        for agg in aggs:
            if agg not in self.aggregates:
                self.aggregates.append(agg)

    def serialise(self):
        raise NotImplementedError()

    def _format_date(self, d):
        return d.strftime("%Y-%m-%dT%H:%M:%SZ")

class AtomStatement(Statement):
    content_type = UriRegistry.feed_content_type

    def __init__(self, *args, **kwargs):
        Statement.__init__(self, *args, **kwargs)
        self.fmap = {"atom" : self.ns.ATOM_NS, "sword" : self.ns.SWORD_NS}

    def serialise(self):
        """
        Serialise this statement to an Atom Feed document
        """
        feed = etree.Element(self.ns.ATOM + "feed", nsmap=self.fmap)

        # the states are categories on the feed
        for state_uri, state_description in self.states:
            state = etree.SubElement(feed, self.ns.ATOM + "category")
            state.set("scheme", self.ns.SWORD_STATE)
            state.set("term", state_uri)
            state.set("label", "State")
            state.text = state_description

        # now do an entry for each original deposit
        for (uri, datestamp, format_uri, by, obo) in self.original_deposits:
            entry = etree.SubElement(feed, self.ns.ATOM + "entry")

            category = etree.SubElement(entry, self.ns.ATOM + "category")
            category.set("scheme", self.ns.SWORD_NS)
            category.set("term", UriRegistry.rel_original_deposit)
            category.set("label", "Original Deposit")

            content = etree.SubElement(entry, self.ns.ATOM + "content")
            content.set("type", "application/zip")
            content.set("src", uri)

            if format_uri is not None:
                packaging = etree.SubElement(entry, self.ns.SWORD + "packaging")
                packaging.text = format_uri

            if datestamp is not None:
                deposited = etree.SubElement(entry, self.ns.SWORD + "depositedOn")
                deposited.text = self._format_date(datestamp)

            if by is not None:
                deposit_by = etree.SubElement(entry, self.ns.SWORD + "depositedBy")
                deposit_by.text = by

            if obo is not None:
                deposit_obo = etree.SubElement(entry, self.ns.SWORD + "depositedOnBehalfOf")
                deposit_obo.text = obo

        # finally do an entry for all the ordinary aggregated resources
        ods = [od[0] for od in self.original_deposits]
        for uri in self.aggregates:
            if uri in ods:
                continue
            entry = etree.SubElement(feed, self.ns.ATOM + "entry")
            content = etree.SubElement(entry, self.ns.ATOM + "content")
            content.set("type", UriRegistry.default_content_type)
            content.set("src", uri)

        return etree.tostring(feed, pretty_print=True)

class OREStatement(Statement):
    content_type = UriRegistry.ore_content_type

    def __init__(self, *args, **kwargs):
        Statement.__init__(self, *args, **kwargs)
        self.smap = {"rdf" : self.ns.RDF_NS, "ore" : self.ns.ORE_NS, "sword" : self.ns.SWORD_NS}

    def serialise(self):
        """
        Serialise this statement into an RDF/XML string
        """
        return etree.tostring(self.get_rdf_xml(), pretty_print=True)

    def get_rdf_xml(self):
        """
        Get an lxml Element object back representing this statement
        """
        rdf = etree.Element(self.ns.RDF + "RDF", nsmap=self.smap)

        # in the RDF root create a Description for the REM which ore:describes the Aggregation
        rem = etree.SubElement(rdf, self.ns.RDF + "Description")
        rem.set(self.ns.RDF + "about", self.rem_uri)
        describes = etree.SubElement(rem, self.ns.ORE + "describes")
        describes.set(self.ns.RDF + "resource", self.aggregation_uri)

        # and a Description for the Aggregation which is ore:isDescribedBy the REM
        aggregation = etree.SubElement(rdf, self.ns.RDF + "Description")
        aggregation.set(self.ns.RDF + "about", self.aggregation_uri)
        idb = etree.SubElement(aggregation, self.ns.ORE + "isDescribedBy")
        idb.set(self.ns.RDF + "resource", self.rem_uri)

        # ore:aggregates for all aggregated files, including the original deposits
        aggregated = []
        for uri in self.aggregates + [od[0] for od in self.original_deposits]:
            if uri is None or uri in aggregated:
                continue
            aggregates = etree.SubElement(aggregation, self.ns.ORE + "aggregates")
            aggregates.set(self.ns.RDF + "resource", uri)
            aggregated.append(uri)

        # assert which of those are original packages
        for (uri, datestamp, format_uri, by, obo) in self.original_deposits:
            if uri is None:
                continue
            original = etree.SubElement(aggregation, self.ns.SWORD + "originalDeposit")
            original.set(self.ns.RDF + "resource", uri)

        # now do the state information
        for state_uri, state_description in self.states:
            state = etree.SubElement(aggregation, self.ns.SWORD + "state")
            state.set(self.ns.RDF + "resource", state_uri)

            sdesc = etree.SubElement(rdf, self.ns.RDF + "Description")
            sdesc.set(self.ns.RDF + "about", state_uri)
            meaning = etree.SubElement(sdesc, self.ns.SWORD + "stateDescription")
            meaning.text = state_description

        # Build the Description elements for the original deposits, with their sword:depositedOn and sword:packaging
        # relations
        for (uri, datestamp, format_uri, by, obo) in self.original_deposits:
            if uri is None:
                continue

            desc = etree.SubElement(rdf, self.ns.RDF + "Description")
            desc.set(self.ns.RDF + "about", uri)

            if format_uri is not None:
                packaging = etree.SubElement(desc, self.ns.SWORD + "packaging")
                packaging.set(self.ns.RDF + "resource", format_uri)

            if datestamp is not None:
                deposited = etree.SubElement(desc, self.ns.SWORD + "depositedOn")
                deposited.set(self.ns.RDF + "datatype", "http://www.w3.org/2001/XMLSchema#dateTime")
                deposited.text = self._format_date(datestamp)

            if by is not None:
                deposit_by = etree.SubElement(desc, self.ns.SWORD + "depositedBy")
                deposit_by.set(self.ns.RDF + "datatype", "http://www.w3.org/2001/XMLSchema#string")
                deposit_by.text = by

            if obo is not None:
                deposit_obo = etree.SubElement(desc, self.ns.SWORD + "depositedOnBehalfOf")
                deposit_obo.set(self.ns.RDF + "datatype", "http://www.w3.org/2001/XMLSchema#string")
                deposit_obo.text = obo

        return rdf
