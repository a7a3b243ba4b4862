import os, sys, json
from .negotiator import AcceptParameters, ContentType
from .core import ContainerManager, MediaResourceManager, StatementManager, Authenticator

from .sword_logging import logging
log = logging.getLogger(__name__)

SWORD_CONFIG_FILE = "./swordserver.conf.json"

DEFAULT_CONFIG = """
{
    ############################################################################
    # SWORD SERVER CONFIGURATION
    ############################################################################
    # This configuration file specifies the parameters for the SWORD server
    # engine
    #
    # Each configuration option can be accessed as an attribute of the
    # Configuration python object.  e.g.
    #
    #   Configuration().return_deposit_receipt
    #
    # You may add any other configuration options directly to this JSON file
    # and they will be picked up in the same way by the Configuration object.
    #
    # This file is JSON formatted with one extension: comments are allowed.
    # Comments are must be on a line of their own, and prefixed with #.  The #
    # must be the first non-whitespace character on the line.  The configuration
    # interpreter will strip all such lines before parsing the JSON, but will
    # leave blank lines in the resulting JSON so that errors may be detected
    # accurately by line number.
    #
    # To validate an this file, run:
    #
    #   python -m swordserver.config /path/to/swordserver.conf.json
    #
    ############################################################################

    # The identity of this server, added to every deposit receipt and error
    # document as an atom:generator element
    "generator_url" : "http://www.swordapp.org/",
    "generator_version" : "2.0",

    # who to contact about this server
    "administrator_email" : null,

    # we can turn off deposit receipts, which SWORD allows
    "return_deposit_receipt" : true,

    # allow GET and HEAD on the media resource without credentials.  Note that
    # if this is on, clients which do not pre-emptively send credentials will
    # never be challenged, so you cannot mix authenticated and anonymous access
    "allow_unauthenticated_media_access" : false,

    # the realm to send in the WWW-Authenticate challenge
    "auth_realm" : "SWORD2",

    # maximum upload size to be allowed, in bytes (this default is 16Mb)
    "max_upload_size" : 16777216,
    # Just set the max_upload_size parameter to null if you don't want any limit

    # buffer binary deposits to disk and compare them against the Content-MD5
    # header sent by the client
    "store_and_check_binary" : true,

    # where to buffer deposits; null means the system temporary directory
    "temp_directory" : null,

    # The acceptable formats that the server can return the container in on
    # request.  This is used in Content Negotiation during GET on the Edit-IRI,
    # where anything other than the atom entry is a request for the Statement
    "container_formats" : [
        {"content_type" : "application/atom+xml;type=entry" },
        {"content_type" : "application/atom+xml;type=feed" },
        {"content_type" : "application/rdf+xml" }
    ],

    # If no Accept parameters are given to the server on GET to the Edit-IRI the
    # following defaults will be used to determine the response type
    "container_format_default" : {
        "content_type" : "application/atom+xml;type=entry"
    },

    # Dynamically load the implementation classes for the collaborators.  These
    # are used by the web.py front end (see webpy.py)
    "container_manager" : null,
    "media_resource_manager" : null,
    "statement_manager" : null,
    "authenticator" : null
}
"""

class Configuration(object):
    def __init__(self, config_file=None):
        self.SWORD_CONFIG_FILE = SWORD_CONFIG_FILE  # default
        if config_file is not None:
            self.SWORD_CONFIG_FILE = config_file

        # extract the configuration from the json object
        self.cfg = self._load_json()

    def get_container_manager_implementation(self):
        if self.container_manager is not None:
            return self._get_class(self.container_manager)
        else:
            return ContainerManager

    def get_media_resource_manager_implementation(self):
        if self.media_resource_manager is not None:
            return self._get_class(self.media_resource_manager)
        else:
            return MediaResourceManager

    def get_statement_manager_implementation(self):
        if self.statement_manager is not None:
            return self._get_class(self.statement_manager)
        else:
            return StatementManager

    def get_authenticator_implementation(self):
        if self.authenticator is not None:
            return self._get_class(self.authenticator)
        else:
            return Authenticator

    def get_generator(self):
        if self.generator_url is None:
            return None
        return (self.generator_url, self.generator_version)

    def get_container_formats(self):
        default_params = None
        if self.container_format_default is not None:
            default_params = self._get_accept_params(self.container_format_default)

        acceptable = []
        for format in (self.container_formats or []):
            acceptable.append(self._get_accept_params(format))

        return default_params, acceptable

    def _get_accept_params(self, obj):
        params = AcceptParameters()
        for k, v in obj.items():
            if k == "content_type":
                params.content_type = ContentType(v)
            elif k == "packaging":
                params.packaging = v
        return params

    def _get_class(self, path):
        if path is None:
            return None

        # split out the classname and the modpath
        components = path.split(".")
        classname = components[-1]
        modpath = ".".join(components[:-1])

        return self._load_class(modpath, classname)

    def _load_class(self, modpath, classname):
        try:
            mod = __import__(modpath, fromlist=[classname])
            return getattr(mod, classname)
        except ImportError:
            log.error("ImportError thrown loading class: " + classname + " from module " + modpath)
            raise
        except AttributeError:
            log.error("Tried and failed to load " + classname + " from " + modpath)
            raise

    def _load_json(self):
        if not os.path.isfile(self.SWORD_CONFIG_FILE):
            self._create_config_file()

        c = ""
        with open(self.SWORD_CONFIG_FILE) as f:
            for line in f:
                if line.strip().startswith("#"):
                    c += "\n" # this makes it easier to debug the config
                else:
                    c += line
        return json.loads(c)

    def _create_config_file(self):
        log.info("Creating default configuration file at " + self.SWORD_CONFIG_FILE)
        with open(self.SWORD_CONFIG_FILE, "w") as fn:
            fn.write(DEFAULT_CONFIG)

    def __getattr__(self, attr):
        # only called for attributes which are not set directly on the object
        if attr == "cfg":
            raise AttributeError(attr)
        return self.cfg.get(attr, None)

if __name__ == "__main__":
    # if we are run from the command line, run validation over the
    # specified file
    if len(sys.argv) != 2:
        print("Please supply a path to a file to validate")
        sys.exit(1)
    print("Validating Configuration File: " + sys.argv[1])
    c = Configuration(config_file=sys.argv[1])
    print("File is valid")
