import os, hashlib, tempfile

from .core import SwordError
from .protocol import Errors

from .sword_logging import logging
log = logging.getLogger(__name__)

class TemporaryStore(object):
    """
    Buffers incoming request bodies to temporary files, so that the managers get
    a stream they can read (and re-read) at their leisure
    """
    CHUNK_SIZE = 65536

    def __init__(self, config):
        self.config = config

    def store(self, stream, deposit):
        """
        Copy the stream into a temporary file, and attach that file to the deposit.
        The file is registered with the deposit before anything is written, so it
        will be removed at the end of the request even if the copy fails.
        Returns the hex md5 of the stored content
        """
        fd, path = tempfile.mkstemp(prefix="sword-", suffix=".tmp", dir=self.config.temp_directory)
        deposit.add_temporary_file(path)
        log.debug("Buffering deposit to temporary file " + path)

        max_size = self.config.max_upload_size
        digest = hashlib.md5()
        size = 0
        with os.fdopen(fd, "wb") as out:
            while stream is not None:
                chunk = stream.read(self.CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if max_size is not None and max_size >= 0 and size > max_size:
                    raise SwordError(error_uri=Errors.max_upload_size_exceeded,
                                        msg="Max upload size is " + str(max_size) + "; incoming content is larger")
                digest.update(chunk)
                out.write(chunk)

        log.info("Buffered " + str(size) + " bytes to " + path)
        deposit.content_length = size
        deposit.input_stream = open(path, "rb")
        return digest.hexdigest()
