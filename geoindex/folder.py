# geoindex/folder.py
"""
Size-bounded folding of a sorted entry sequence into a tree of objects.

Each level is first cut into maximal contiguous runs whose estimated
encoding fits the budget. Every run is written (concurrently) and judged by
the size the store reports for it: a run over budget is bisected and
written again, and neighbouring runs the store reports as small enough
together are merged into one candidate. The accepted runs become the
references of the next level up, until a single object remains: the root.

Intermediate objects hold child references only; raw entries live in
leaves. Runs are cut greedily from the left, so datasets sharing a prefix
also share the objects built from it.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, Optional, Sequence

from geoindex.cache import SubtreeCache
from geoindex.codec import empty_size, estimate_item_size, is_reference_level
from geoindex.config import FolderConfig
from geoindex.errors import BudgetTooSmall, FoldError, StoreError
from geoindex.materializer import put_object
from geoindex.models import Entry, Item, StoredNode
from geoindex.store.base import BlockStore
from geoindex.utils.logging import get_logger

log = get_logger(__name__)

Run = tuple[int, int]   # [start, stop) indexes into one level's items


def validate_entries(entries: Iterable[Entry]) -> list[Entry]:
    """
    Materialize ``entries`` and check they are sorted with unique keys.

    Raises:
        ValueError: on an empty sequence, a non-Entry item, a non-integer
            or negative key, or keys that are not strictly increasing.
    """
    items = list(entries)
    if not items:
        raise ValueError("cannot fold an empty entry sequence")

    previous: Optional[int] = None
    for position, entry in enumerate(items):
        if not isinstance(entry, Entry):
            raise ValueError(f"item {position} is not an Entry: {entry!r}")
        key = entry.range_start
        if isinstance(key, bool) or not isinstance(key, int) or key < 0:
            raise ValueError(f"entry {position} has invalid range_start {key!r}")
        if previous is not None and key <= previous:
            raise ValueError(
                f"entries must be strictly increasing: {key} follows {previous} at {position}"
            )
        previous = key
    return items


def plan_runs(items: Sequence[Item], budget: int, max_fanout: Optional[int] = None) -> list[Run]:
    """
    Cut ``items`` into maximal contiguous runs estimated to fit ``budget``.

    An item too large to fit on its own still gets a run of its own.
    """
    base = empty_size(is_reference_level(items))
    runs: list[Run] = []
    start = 0
    size = base
    for index, item in enumerate(items):
        item_size = estimate_item_size(item)
        count = index - start
        if count and (size + item_size > budget or (max_fanout is not None and count >= max_fanout)):
            runs.append((start, index))
            start = index
            size = base
        size += item_size
    runs.append((start, len(items)))
    return runs


class TreeFolder:
    """
    Folds entry sequences into content-addressed trees in one store.

    A folder holds no state between calls besides the optional cache it is
    given, so one instance may fold several datasets, even concurrently.
    """

    def __init__(
            self,
            store: BlockStore,
            config: Optional[FolderConfig] = None,
            cache: Optional[SubtreeCache] = None,
    ) -> None:
        self.store = store
        self.config = (config or FolderConfig()).validate()
        self.cache = cache

    @property
    def budget(self) -> int:
        return self.config.max_object_size

    def fold(self, entries: Iterable[Entry]) -> StoredNode:
        """
        Fold ``entries`` into a tree and return its root.

        Raises:
            ValueError: if ``entries`` is empty or not strictly sorted.
            FoldError: if any object could not be stored; nothing is
                returned in that case.
            BudgetTooSmall: if the budget cannot hold two references.
        """
        items: list[Item] = list(validate_entries(entries))
        log.info("Folding %d entries (budget %d bytes)", len(items), self.budget)

        level = 0
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
            while True:
                nodes = self._fold_level(pool, items, level)
                log.info("Level %d: %d items -> %d objects", level, len(items), len(nodes))
                if len(nodes) == 1:
                    root = nodes[0]
                    log.info("Root %s covers from %d (%d levels)", root.address, root.range_start, level + 1)
                    return root
                if level > 0 and len(nodes) >= len(items):
                    raise BudgetTooSmall(
                        f"store reports no object of two child references within {self.budget} bytes"
                    )
                items = list(nodes)
                level += 1

    def _range_end(self, items: Sequence[Item], stop: int) -> Optional[int]:
        if stop < len(items):
            return items[stop].range_start - 1
        return None

    def _put_run(self, items: Sequence[Item], run: Run) -> StoredNode:
        start, stop = run
        return put_object(self.store, items[start:stop], items[start].range_start, self.cache)

    def _put_batch(
            self,
            pool: ThreadPoolExecutor,
            items: Sequence[Item],
            runs: Sequence[Run],
            level: int,
    ) -> list[StoredNode]:
        """
        Write ``runs`` concurrently and return their nodes in run order.

        On any failure the writes not yet started are cancelled before the
        error leaves this method.
        """
        futures: list[Future] = [pool.submit(self._put_run, items, run) for run in runs]
        nodes: list[StoredNode] = []
        try:
            # results are consumed in run order, whatever order they finish in
            for (start, stop), future in zip(runs, futures):
                try:
                    nodes.append(future.result())
                except StoreError as exc:
                    raise FoldError(
                        items[start].range_start,
                        self._range_end(items, stop),
                        level,
                        exc,
                    ) from exc
        except BaseException:
            for future in futures:
                future.cancel()
            raise
        return nodes

    def _write_runs(
            self,
            pool: ThreadPoolExecutor,
            items: Sequence[Item],
            runs: Sequence[Run],
            level: int,
    ) -> list[tuple[Run, StoredNode]]:
        """Write ``runs``, bisecting any the store reports as over budget."""
        accepted: dict[int, tuple[Run, StoredNode]] = {}
        pending = deque(runs)

        while pending:
            batch = list(pending)
            pending.clear()
            for run, node in zip(batch, self._put_batch(pool, items, batch, level)):
                start, stop = run
                if node.size <= self.budget:
                    accepted[start] = (run, node)
                elif stop - start > 1:
                    middle = (start + stop) // 2
                    log.debug(
                        "Level %d: run [%d, %d) is %d bytes, splitting at %d",
                        level, start, stop, node.size, middle,
                    )
                    pending.append((start, middle))
                    pending.append((middle, stop))
                else:
                    log.warning(
                        "Level %d: item at %d is %d bytes on its own, over the %d byte budget",
                        level, items[start].range_start, node.size, self.budget,
                    )
                    accepted[start] = (run, node)

        return [accepted[start] for start in sorted(accepted)]

    def _merge_groups(self, written: Sequence[tuple[Run, StoredNode]]) -> list[list[int]]:
        """
        Group neighbouring runs whose reported sizes add up to the budget.

        Only the store's sizes count here, so a store that stores less than
        the payload it was given gets fewer, larger objects.
        """
        fanout = self.config.max_fanout
        groups: list[list[int]] = []
        total = 0
        count = 0
        for index, ((start, stop), node) in enumerate(written):
            if (
                    groups
                    and total + node.size <= self.budget
                    and (fanout is None or count + stop - start <= fanout)
            ):
                groups[-1].append(index)
                total += node.size
                count += stop - start
            else:
                groups.append([index])
                total = node.size
                count = stop - start
        return groups

    def _fold_level(self, pool: ThreadPoolExecutor, items: Sequence[Item], level: int) -> list[StoredNode]:
        """
        Turn one level's items into the nodes of the level above.

        The local estimate only gives the first cut. Runs the store reports
        as too big are bisected, and neighbours the store reports as small
        enough together are written again as one candidate, kept if the
        store agrees.
        """
        plan = plan_runs(items, self.budget, self.config.max_fanout)
        written = self._write_runs(pool, items, plan, level)

        while len(written) > 1:
            groups = [g for g in self._merge_groups(written) if len(g) > 1]
            if not groups:
                break
            runs = [(written[g[0]][0][0], written[g[-1]][0][1]) for g in groups]
            nodes = self._put_batch(pool, items, runs, level)
            merged = {
                g[0]: (g[-1], (run, node))
                for g, run, node in zip(groups, runs, nodes)
                if node.size <= self.budget
            }
            if not merged:
                break

            result: list[tuple[Run, StoredNode]] = []
            index = 0
            while index < len(written):
                if index in merged:
                    last, pair = merged[index]
                    result.append(pair)
                    index = last + 1
                else:
                    result.append(written[index])
                    index += 1
            log.debug("Level %d: merged %d runs into %d", level, len(written), len(result))
            written = result

        return [node for _, node in written]


def fold_entries(
        entries: Iterable[Entry],
        store: BlockStore,
        config: Optional[FolderConfig] = None,
        cache: Optional[SubtreeCache] = None,
) -> StoredNode:
    """Fold ``entries`` into ``store`` and return the root node."""
    return TreeFolder(store, config=config, cache=cache).fold(entries)
