"""
Core package for strata contracts (predicates, partitioners, strategies, constraints).

## Contracts (single source of truth)
- Predicates — the closed query primitives Exists, In and Range, plus intersection.
- Partitioners — field-level mapping from source values to partition values, with
  permissive (project) and strict (project_strict) predicate projection.
- Strategy — ordered partitioners; StorageKey computation and directory rendering.
- Constraints — immutable per-field conjunction; per-level projection; coverage proofs.
- Descriptor/Schema — frozen dataset descriptors and their pydantic declarations.
- Hashing/Typing/Constants/Errors — shared helpers and defaults.

## Notes
- Zero‑IO policy: stdlib + pydantic only; no file/network IO.
- Projection never guesses: anything that cannot be proven projects to None.

## Downstream usage
- strata.io — walks partition directories using Constraints.project(), deletes whole
  partitions using Constraints.covers(), and routes writes with PartitionStrategy.key_for().

## Examples
```python
from strata.core.constraints import Constraints
from strata.core.partitioners import ListFieldPartitioner
from strata.core.strategy import PartitionStrategy

strategy = PartitionStrategy([ListFieldPartitioner("letter", [{"a", "b"}, {"c"}])])
Constraints().with_in("letter", "a", "c").project(strategy)  # (In(values=frozenset({0, 1})),)
```
"""
