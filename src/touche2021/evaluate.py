"""
Evaluation module.

Computes standard retrieval effectiveness measures of a run with ir_measures.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import ir_measures as irms


logger = logging.getLogger(__name__)


def evaluate_runs(
    runs: Mapping[str, Union[Any, Sequence[Tuple[str, float]]]],
    qrels: List[Any],  # List[ir_datasets.Qrel]
    measures: Optional[List[str]] = None,
    eval_at: Optional[List[int]] = None
) -> Dict[str, float]:
    """Evaluate retrieval results.

    Args:
        runs: Mapping from topic id to a RankedList or a ranked list of (doc_id, score)
        qrels: Relevance judgments from ir_datasets (qrels_iter())
        measures: List of measure strings (e.g., ["nDCG@10", "P@10", "R@1000", "MAP"]).
                  If None, defaults to [nDCG@k, P@k for k in eval_at] plus R@1000 and MAP.
        eval_at: Cutoff list for position-based measures; defaults to [5, 10] if None.

    Returns:
        Dict[str, float]: Mapping from measure name to aggregate score
    """
    if not runs:
        logger.warning("Run is empty, skipping evaluation")
        return {}

    if measures is None:
        if eval_at is None:
            eval_at = [5, 10]

        measures = []
        for k in eval_at:
            measures.extend([f"nDCG@{k}", f"P@{k}"])
        measures.extend(["R@1000", "MAP"])

    run = []
    for qid, items in runs.items():
        pairs = items.as_pairs() if hasattr(items, "as_pairs") else items
        for docid, score in pairs:
            run.append(irms.ScoredDoc(str(qid), str(docid), float(score)))

    try:
        res = {}
        for measure_str in measures:
            measure = irms.parse_measure(measure_str)
            res[measure_str] = measure.calc_aggregate(qrels, run)
        return res
    except Exception as e:
        logger.error(f"Error evaluating: {e}")
        raise
