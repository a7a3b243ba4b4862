from .sword_logging import logging
log = logging.getLogger(__name__)

# CONTENT NEGOTIATION
#######################################################################
# A sort of generic tool for carrying out content negotiation tasks with the web interface

class ContentType(object):
    """
    Class to represent a content type requested through content negotiation
    """
    def __init__(self, mimetype=None, type=None, subtype=None, params=None):
        """
        Properties:
        type    - the main type of the content.  e.g. in text/html, the type is "text"
        subtype - the subtype of the content.  e.g. in text/html the subtype is "html"
        params  - as per RFC 2045, this represents the parameter extension to the type, e.g. with
                    application/atom+xml;type=entry, the params are "type=entry"

        So, for example:
        application/atom+xml;type=entry => type="application", subtype="atom+xml", params="type=entry"
        """
        self.type = type
        self.subtype = subtype
        self.params = params
        if mimetype is not None:
            self.from_mimetype(mimetype)

    def from_mimetype(self, mimetype):
        # mimetype is of the form <supertype>/<subtype>[;<params>]
        parts = [p.strip() for p in mimetype.split(";")]
        if "/" in parts[0]:
            self.type, self.subtype = parts[0].split("/", 1)
        else:
            # a lone "*" is sometimes sent in place of "*/*"
            self.type, self.subtype = parts[0], "*"
        params = [p for p in parts[1:] if p != ""]
        self.params = ";".join(params) if len(params) > 0 else None

    def mimetype(self):
        """
        Turn the content type into its mimetype representation
        """
        mt = self.type + "/" + self.subtype
        if self.params is not None:
            mt += ";" + self.params
        return mt

    def matches(self, other):
        """
        Determine whether this ContentType and the supplied other ContentType are matches.  This includes full equality
        or whether the wildcards (*) which can be supplied for type or subtype properties are in place in either
        partner in the match.
        """
        tmatch = self.type == "*" or other.type == "*" or self.type == other.type
        smatch = self.subtype == "*" or other.subtype == "*" or self.subtype == other.subtype
        # FIXME: there is some ambiguity in mime as to whether the omission of the params part is the same as
        # a wildcard.  For the purposes of convenience we have assumed here that it is, otherwise a request for
        # */* will not match any content type which has parameters
        pmatch = self.params is None or other.params is None or self.params == other.params
        return tmatch and smatch and pmatch

    def __eq__(self, other):
        return isinstance(other, ContentType) and self.mimetype() == other.mimetype()

    def __hash__(self):
        return hash(self.mimetype())

    def __str__(self):
        return self.mimetype()

    def __repr__(self):
        return "ContentType(" + self.mimetype() + ")"

class AcceptParameters(object):
    """
    A content type and (optionally) a packaging format, as either requested by
    the client or offered by the server
    """
    def __init__(self, content_type=None, packaging=None):
        self.content_type = content_type
        self.packaging = packaging

    def matches(self, other):
        if self.content_type is not None and other.content_type is not None:
            if not self.content_type.matches(other.content_type):
                return False
        return self.packaging == other.packaging

    def media_format(self):
        mime = self.content_type.mimetype() if self.content_type is not None else "*/*"
        pack = ""
        if self.packaging is not None:
            pack = "(packaging=\"" + self.packaging + "\") "
        return "(& (type=\"" + mime + "\") " + pack + ")"

    def __eq__(self, other):
        return isinstance(other, AcceptParameters) and self.media_format() == other.media_format()

    def __hash__(self):
        return hash(self.media_format())

    def __str__(self):
        return self.media_format()

    def __repr__(self):
        return "AcceptParameters" + self.media_format()

class ContentNegotiator(object):
    """
    Class to manage content negotiation.  Given its input parameters it will provide an AcceptParameters object
    which the server can use to locate its resources
    """
    def __init__(self, default_accept_parameters=None, acceptable=None):
        """
        - default_accept_parameters -   what to return if the client expresses no preference
        - acceptable    -   What AcceptParameters objects are acceptable to return (in order of preference)
        """
        self.default_accept_parameters = default_accept_parameters
        self.acceptable = acceptable if acceptable is not None else []

    def analyse_accept(self, accept, packaging=None):
        """
        Analyse the Accept header string from the HTTP headers and return a structured dictionary with each
        content types grouped by their common q values, thus:

        dict = {
            1.0 : [<AcceptParameters>, <AcceptParameters>],
            0.8 : [<AcceptParameters>],
            0.5 : [<AcceptParameters>, <AcceptParameters>]
        }

        Content types listed without a q value are placed, in the order the client listed them, between 1.0 and
        the highest explicitly requested q.  Content types with q=0 are not acceptable and are left out.
        """
        unsorted = []
        highest_q = 0.0
        for part in accept.split(","):
            part = part.strip()
            if part == "":
                continue

            components = [c.strip() for c in part.split(";")]
            params = []
            q = None
            for c in components[1:]:
                if c.startswith("q="):
                    try:
                        q = float(c[2:])
                    except ValueError:
                        log.info("Ignoring unparseable q value in Accept header: " + c)
                else:
                    params.append(c)

            mimetype = components[0]
            if len(params) > 0:
                mimetype += ";" + ";".join(params)

            if q is not None:
                if q <= 0.0:
                    continue
                if q > highest_q:
                    highest_q = q
            unsorted.append((ContentType(mimetype), q))

        # the content types without q values fill the gap between the highest explicit q and 1.0
        q_range = 1.0 - highest_q
        implicit_count = len([q for ct, q in unsorted if q is None])

        analysed = {}
        position = 0
        for ct, q in unsorted:
            if q is None:
                q = 1.0 - (float(position) / implicit_count) * q_range
                position += 1
            analysed.setdefault(round(q, 6), []).append(AcceptParameters(ct, packaging))
        return analysed

    def contains_match(self, source, target):
        """
        Does the target list of AcceptParameters objects contain a match for the supplied source
        Returns the matching AcceptParameters from the target list, or None if no such match
        """
        for ap in target:
            if source.matches(ap):
                # we return the target's parameters, as this is considered the definitive list of allowed
                # formats, while the source may contain wildcards
                return ap
        return None

    def get_acceptable(self, client, server):
        """
        Take the client content negotiation requirements - as returned by analyse_accept() - and the server's
        array of supported types (in order of preference) and determine the most acceptable format to return.

        This method always returns the client's most preferred format if the server supports it, irrespective of the
        server's preference.  If the client has no discernable preference between two formats (i.e. they have the same
        q value) then the server's preference is taken into account.
        """
        for q in sorted(client.keys(), reverse=True):
            allowable = []
            for p in client[q]:
                match = self.contains_match(p, server)
                if match is not None:
                    allowable.append(match)

            if len(allowable) == 0:
                continue
            elif len(allowable) == 1:
                return allowable[0]
            else:
                # several at the same q, so the server's preference decides
                for ap in server:
                    if ap in allowable:
                        return ap

        # the client and server can't come to an agreement
        return None

    def negotiate(self, accept=None, accept_packaging=None):
        """
        Main method for carrying out content negotiation over the supplied Accept and Accept-Packaging headers.
        Returns either the preferred AcceptParameters as per the settings of the object, or None if no agreement
        could be reached
        """
        log.debug("Fallback parameters are " + str(self.default_accept_parameters))
        log.debug("Accept Header: " + str(accept) + "; Accept-Packaging: " + str(accept_packaging))

        if accept is None and accept_packaging is None:
            return self.default_accept_parameters

        packaging = accept_packaging
        if packaging is None and self.default_accept_parameters is not None:
            packaging = self.default_accept_parameters.packaging

        if accept is None:
            if self.default_accept_parameters is not None and self.default_accept_parameters.content_type is not None:
                accept = self.default_accept_parameters.content_type.mimetype()
            else:
                accept = "*/*"

        analysed = self.analyse_accept(accept, packaging)
        log.debug("Analysed Accept: " + str(analysed))

        accept_parameters = self.get_acceptable(analysed, self.acceptable)
        log.debug("Accepted: " + str(accept_parameters))
        return accept_parameters
