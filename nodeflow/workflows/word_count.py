"""
Word Count Workflow.

A map-reduce over a set of documents:

```
count_all (BatchFlow, one pass per doc_id) ──→ report
    └── count_chunks (BatchNode) ──→ sum_chunks
```

For every document, count_chunks splits the text into chunks of lines and
counts the words of each chunk; sum_chunks reduces the chunk counts to a
document total. Once every document is counted, report summarizes.
"""

from typing import Any, Dict, List, Optional
import logging

from nodeflow.engine.flow import BatchFlow, Flow
from nodeflow.engine.node import BatchNode, Node
from nodeflow.workflows.registry import workflow_registry


logger = logging.getLogger(__name__)


DEFAULT_LINES_PER_CHUNK = 10


class CountChunks(BatchNode):
    """Map step: count the words of each chunk of one document."""

    async def prep(self, shared: Dict[str, Any]) -> List[str]:
        text = shared["documents"][self.params["doc_id"]]
        size = self.params.get("lines_per_chunk", DEFAULT_LINES_PER_CHUNK)
        lines = text.splitlines()
        return ["\n".join(lines[i:i + size]) for i in range(0, len(lines), size)]

    async def exec(self, chunk: str) -> int:
        return len(chunk.split())

    async def post(self, shared: Dict[str, Any], prep_res: List[str], exec_res: List[int]) -> None:
        shared.setdefault("chunk_counts", {})[self.params["doc_id"]] = exec_res


class SumChunks(Node):
    """Reduce step: add up the chunk counts of one document."""

    async def prep(self, shared: Dict[str, Any]) -> List[int]:
        return shared["chunk_counts"][self.params["doc_id"]]

    async def exec(self, chunk_counts: List[int]) -> int:
        return sum(chunk_counts)

    async def post(self, shared: Dict[str, Any], prep_res: List[int], total: int) -> None:
        shared.setdefault("counts", {})[self.params["doc_id"]] = total


class CountAllDocuments(BatchFlow):
    """Runs the per-document flow once for every document, in id order."""

    async def prep(self, shared: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [{"doc_id": doc_id} for doc_id in sorted(shared["documents"])]

    async def post(self, shared: Dict[str, Any], prep_res: List[Dict[str, Any]], exec_res: None) -> None:
        logger.info(f"Counted words in {len(prep_res)} documents")


class Report(Node):
    """Summarize the per-document totals."""

    async def prep(self, shared: Dict[str, Any]) -> Dict[str, int]:
        return shared.get("counts", {})

    async def exec(self, counts: Dict[str, int]) -> Dict[str, Any]:
        largest = max(counts, key=counts.get) if counts else None
        return {
            "documents": len(counts),
            "total_words": sum(counts.values()),
            "largest_document": largest,
        }

    async def post(self, shared: Dict[str, Any], prep_res: Dict[str, int], report: Dict[str, Any]) -> None:
        shared["report"] = report


def build_word_count_flows(max_retries: int = 2) -> Dict[str, Flow]:
    """Create the word count flow."""
    count_chunks = CountChunks(max_retries=max_retries, name="count_chunks")
    count_chunks.connect(SumChunks(max_retries=max_retries, name="sum_chunks"))

    count_all = CountAllDocuments(start=count_chunks, name="count_all")
    count_all.connect(Report(name="report"))

    return {"word_count": Flow(start=count_all, name="word_count")}


@workflow_registry.register("word_count", build=build_word_count_flows)
async def run_word_count(shared: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Count words per document with a map-reduce batch flow.

    Shared context requires:
    - documents: Dict[str, str] - Document id to text

    Params:
    - lines_per_chunk: int - Lines per map chunk (defaults to 10)
    """
    if not isinstance(shared.get("documents"), dict):
        raise ValueError("Shared context requires a 'documents' mapping")

    flow = build_word_count_flows()["word_count"]
    await flow.run(shared, params)

    return {
        "counts": dict(shared.get("counts", {})),
        "report": shared["report"],
    }
