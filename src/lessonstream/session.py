# incremental reassembly of a streamed response into units
import re
import logging
from typing import List, Optional

from .decoder import ChunkDecoder, Fragment
from .errors import SessionStateError
from .models import SessionState, Unit
from .units import UnitParser

logger = logging.getLogger(__name__)

# glyphs some clients append to show the stream is still typing
CURSOR_TAIL = re.compile(r"[▌▍█\s]+$")


def trim_stream_tail(buffer: str) -> str:
    return CURSOR_TAIL.sub("", buffer)


class ParseSession:
    """Reparses the whole buffer on every chunk and caches the result.

    One session per generation. Parsing the same buffer twice gives the
    same units; while the stream is open only the last unit is
    provisional, since its body may still grow.
    """

    def __init__(self, parser: UnitParser, decoder: Optional[ChunkDecoder] = None):
        self.parser = parser
        self.decoder = decoder or ChunkDecoder()
        self.reset()

    @property
    def kind(self) -> str:
        return self.parser.name

    @property
    def strategy(self) -> Optional[str]:
        return self._strategy

    def reset(self):
        """Discard the buffer and all units; the session is reusable afterwards."""
        self.buffer = ""
        self.state = SessionState.EMPTY
        self.decoder.reset()
        self._units: List[Unit] = []
        self._parsed_buffer: Optional[str] = None
        self._strategy: Optional[str] = None

    # take the latest stream text, cumulative by default
    def parse_chunk(self, text: str, cumulative: bool = True) -> List[Unit]:
        if not isinstance(text, str):
            raise TypeError(f"parse_chunk expects str, got {type(text).__name__}")
        if self.state == SessionState.FINALIZED:
            raise SessionStateError("Session is finalized; call reset() before parsing new content")

        if cumulative:
            if self.buffer and not text.startswith(self.buffer):
                logger.warning(
                    f"Cumulative text does not extend the buffer ({len(self.buffer)} -> {len(text)} chars), replacing it"
                )
            self.buffer = text
        else:
            self.buffer += text

        self.state = SessionState.ACCUMULATING
        self._reparse()
        return self.get_all_units()

    # decode a raw fragment and append it
    def feed(self, fragment: Fragment) -> List[Unit]:
        if self.state == SessionState.FINALIZED:
            raise SessionStateError("Session is finalized; call reset() before feeding new content")
        return self.parse_chunk(self.decoder.decode(fragment), cumulative=False)

    def get_all_units(self) -> List[Unit]:
        return [unit.model_copy(deep=True) for unit in self._units]

    def finalize(self) -> List[Unit]:
        """Close the stream and return the final units.

        Raises SessionStateError when nothing was parsed yet; calling it
        again after success just returns the same units.
        """
        if self.state == SessionState.FINALIZED:
            return self.get_all_units()
        if self.state == SessionState.EMPTY:
            raise SessionStateError("finalize() called before any content was parsed")

        self.buffer = trim_stream_tail(self.buffer + self.decoder.flush())
        self._reparse(final=True)
        self.state = SessionState.FINALIZED

        if self.decoder.failed_fragments:
            logger.warning(f"{self.decoder.failed_fragments} fragments could not be decoded")
        logger.info(f"✓ Finalized {self.kind} session: {len(self._units)} units using {self._strategy}")
        return self.get_all_units()

    def _reparse(self, final: bool = False):
        if self.buffer == self._parsed_buffer and not final:
            return

        units = self.parser.parse(self.buffer)
        self._strategy = self.parser.last_strategy
        last = len(units) - 1
        self._units = [
            unit.model_copy(update={"is_provisional": not final and index == last})
            for index, unit in enumerate(units)
        ]
        self._parsed_buffer = self.buffer
