"""
TREC run file input/output.

Run lines are tab separated: topic id, the literal Q0, document id, rank,
score with six decimals and the run id.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, TextIO, Tuple

from .errors import CollaboratorIOError


logger = logging.getLogger(__name__)


def format_run_line(topic_id: str, doc_id: str, rank: int, score: float, run_id: str) -> str:
    return f"{topic_id}\tQ0\t{doc_id}\t{rank:d}\t{score:.6f}\t{run_id}\n"


class TrecRunWriter:
    """Writes rankings to a TREC run file, one flush per topic.

    Attributes:
        path: Run file path
        run_id: Run identifier written in the last column
        lines_written: Number of lines written so far
    """

    def __init__(self, path, run_id: str) -> None:
        """Opens the run file for writing, creating its directory.

        Raises:
            CollaboratorIOError: When the file cannot be created
        """
        self.path = Path(path)
        self.run_id = run_id
        self.lines_written = 0
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh: Optional[TextIO] = open(self.path, "w", encoding="utf-8", newline="\n")
        except OSError as e:
            raise CollaboratorIOError(f"Unable to open run file {self.path}: {e}") from e
        logger.debug(f"Writing run {run_id} to {self.path}")

    def __enter__(self) -> "TrecRunWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def write(self, ranking) -> None:
        """Write all documents of a RankedList and flush."""
        if self._fh is None:
            raise CollaboratorIOError(f"Run file {self.path} is already closed")
        try:
            for doc in ranking.documents:
                self._fh.write(format_run_line(ranking.topic_id, doc.doc_id, doc.rank, doc.score, self.run_id))
            self._fh.flush()
        except OSError as e:
            raise CollaboratorIOError(f"Unable to write to run file {self.path}: {e}") from e
        self.lines_written += len(ranking.documents)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None
            logger.info(f"Run file written: {self.path} ({self.lines_written} lines)")


def read_trec_run(path) -> Dict[str, List[Tuple[str, float]]]:
    """Read a run file back into (doc_id, score) lists per topic, in file order.

    Raises:
        CollaboratorIOError: When the file cannot be read or a line is malformed
    """
    runs: Dict[str, List[Tuple[str, float]]] = {}
    try:
        with open(path, encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                parts = line.split()
                if len(parts) != 6:
                    raise CollaboratorIOError(f"{path}:{lineno}: expected 6 columns, got {len(parts)}")
                topic_id, _, doc_id, _, score, _ = parts
                runs.setdefault(topic_id, []).append((doc_id, float(score)))
    except CollaboratorIOError:
        raise
    except OSError as e:
        raise CollaboratorIOError(f"Unable to read run file {path}: {e}") from e
    except ValueError as e:
        raise CollaboratorIOError(f"Malformed score in run file {path}: {e}") from e
    return runs
