"""
Entry dispatcher: turns dump entries into writer calls.

The dispatcher is the EntryListener every dump source feeds. It decides
what each entry means:

    <db>/<collection>            directory -> create collection
    <db>/<collection>/<file>     file      -> decode, add document
    <db>/.metadata               directory -> ignored
    <db>/.metadata/<collection>  file      -> index list for <collection>

Invariants:
    - .metadata is never created as a collection nor written to
    - With metadata replay off, .metadata blobs are never read
    - Index records are handed to the writer only after drain() returns
    - A blob that fails to decode, or decodes to something other than a
      document, aborts the restore with SourceFormatError

How to change safely:
    - Keep the classification in DumpEntry so sources and dispatcher agree
    - Anything slow added here delays every entry of the dump
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Callable, List, Mapping, Optional

from ..errors import SourceFormatError
from ..source.base import METADATA_DIR, DumpEntry, EntryKind
from .decoder import Decoder, decode_index_specs
from .writer import BatchedWriter, MetadataRecord

logger = logging.getLogger(__name__)

PHASE_DRAINING = "draining"
PHASE_INDEX_APPLYING = "index_applying"


class EntryDispatcher:
    """Classifies dump entries and forwards them to a BatchedWriter.

    Attributes:
        writer: Writer receiving collections and documents
        decoder: Decoder for document blobs
        metadata: Whether index definitions are replayed
        metadata_records: Index records collected so far, in arrival order

    Example:
        >>> dispatcher = EntryDispatcher(writer, Decoder.json(), metadata=True)
        >>> await FilesystemDumpSource(root).begin(dispatcher)
    """

    def __init__(
        self,
        writer: BatchedWriter,
        decoder: Decoder,
        metadata: bool = False,
        log: Optional[logging.Logger] = None,
        on_phase: Optional[Callable[[str], None]] = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            writer: Writer to forward to
            decoder: Resolved document decoder
            metadata: Replay index definitions from .metadata
            log: Session logger; defaults to this module's logger
            on_phase: Called with PHASE_DRAINING / PHASE_INDEX_APPLYING as
                finish() advances
        """
        self.writer = writer
        self.decoder = decoder
        self.metadata = metadata
        self.metadata_records: List[MetadataRecord] = []
        self._log = log or logger
        self._on_phase = on_phase
        self.documents_seen = 0

    async def on_directory(self, path: str) -> None:
        entry = DumpEntry(EntryKind.DIRECTORY, path)
        collection = entry.collection
        if collection is None or collection == METADATA_DIR:
            return
        await self.writer.create_collection(collection)

    async def on_file(self, path: str, stream: BinaryIO) -> None:
        entry = DumpEntry(EntryKind.FILE, path)
        collection = entry.collection
        if collection is None:
            self._log.warning(f"Skipping {path}: not inside a collection directory")
            return

        if collection == METADATA_DIR:
            if not self.metadata:
                return
            data = stream.read()
            try:
                indexes = decode_index_specs(data)
            except Exception as e:
                raise SourceFormatError(f"Malformed index metadata in {path}: {e}", path=path) from e
            self.metadata_records.append(MetadataRecord(entry.filename, indexes))
            return

        data = stream.read()
        try:
            document = self.decoder.decode(data)
        except Exception as e:
            raise SourceFormatError(f"Failed to decode document {path}: {e}", path=path) from e
        if not isinstance(document, Mapping):
            raise SourceFormatError(
                f"Decoded {path} to {type(document).__name__}, expected a document", path=path
            )

        self.documents_seen += 1
        await self.writer.add_document(collection, document)

    async def finish(self) -> None:
        """Drain the writer, then replay indexes if enabled."""
        self._phase(PHASE_DRAINING)
        await self.writer.drain()

        if not self.metadata:
            return

        self._phase(PHASE_INDEX_APPLYING)
        await self.writer.add_indices(self.metadata_records)

    def _phase(self, phase: str) -> None:
        if self._on_phase is not None:
            self._on_phase(phase)
