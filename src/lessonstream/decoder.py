# incremental decoding of raw stream fragments into text
import codecs
import logging
from typing import Union

logger = logging.getLogger(__name__)

Fragment = Union[str, bytes, bytearray]


# turns byte or text fragments into text, in arrival order
class ChunkDecoder:
    """Decode stream fragments without ever failing the generation.

    Multi-byte characters split across two fragments are held back until
    the rest of the sequence arrives. A fragment that cannot be decoded
    contributes an empty string and the decoder starts over.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self.failed_fragments = 0

    # decode a single fragment
    def decode(self, fragment: Fragment) -> str:
        if isinstance(fragment, str):
            return fragment
        if not isinstance(fragment, (bytes, bytearray)):
            raise TypeError(f"stream fragments must be str or bytes, got {type(fragment).__name__}")

        try:
            return self._decoder.decode(bytes(fragment))
        except UnicodeDecodeError as e:
            self.failed_fragments += 1
            error = str(e)
            self._decoder.reset()

        # the bytes held back from earlier fragments may be the broken part
        try:
            text = self._decoder.decode(bytes(fragment))
            logger.warning(f"Dropped an incomplete sequence held before a {len(fragment)} byte fragment: {error}")
            return text
        except UnicodeDecodeError as retry_error:
            logger.warning(f"Dropping undecodable fragment ({len(fragment)} bytes): {str(retry_error)}")
            self._decoder.reset()
            return ""

    # drain any partial sequence left when the stream ends
    def flush(self) -> str:
        try:
            return self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as e:
            self.failed_fragments += 1
            logger.warning(f"Dropping incomplete trailing sequence: {str(e)}")
            return ""
        finally:
            self._decoder.reset()

    def reset(self):
        self._decoder.reset()
        self.failed_fragments = 0
