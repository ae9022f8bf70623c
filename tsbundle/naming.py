from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from tsbundle.helpers import file_stem, pascal_case
from tsbundle.logger import BundleLogger as logger
from tsbundle.models import (
    DEFAULT_EXPORT_KEY,
    Declaration,
    DeclarationId,
    FinalNameAssignment,
    ResolutionMaps,
)


class NameResolver:
    """
    Assigns every kept declaration a final, collision-free output name.

    Rules, later ones overriding earlier ones for the same id:

    1. the declared name;
    2. an alias some file imports or re-exports it under (first one in
       sorted file / name order), unless the declaration is the target of a
       default export;
    3. a flattened namespace member name, ``ns.Foo`` -> ``ns_Foo``;
    4. an explicit alias supplied for a requested entry;
    5. collisions: the id sorting first keeps the name, the others become
       ``{Name}From{FileStem}`` with an ``_N`` suffix if that is taken too.
    """

    def resolve(
        self,
        declarations: Iterable[Declaration],
        resolution_maps: ResolutionMaps,
        entry_aliases: Optional[Mapping[DeclarationId, str]] = None,
    ) -> FinalNameAssignment:
        by_id: Dict[DeclarationId, Declaration] = {d.id: d for d in declarations}
        names: FinalNameAssignment = {decl_id: d.name for decl_id, d in by_id.items()}

        default_targets = {
            scope[DEFAULT_EXPORT_KEY]
            for scope in resolution_maps.values()
            if DEFAULT_EXPORT_KEY in scope
        }

        aliased: set[DeclarationId] = set()
        flattened: set[DeclarationId] = set()
        for file_path in sorted(resolution_maps):
            scope = resolution_maps[file_path]
            for local_name in sorted(scope):
                decl_id = scope[local_name]
                if decl_id not in by_id:
                    continue
                if "." in local_name:
                    if decl_id not in flattened:
                        names[decl_id] = local_name.replace(".", "_")
                        flattened.add(decl_id)
                    continue
                if (
                    local_name != by_id[decl_id].name
                    and decl_id not in default_targets
                    and decl_id not in aliased
                    and decl_id not in flattened
                ):
                    names[decl_id] = local_name
                    aliased.add(decl_id)

        for decl_id, alias in (entry_aliases or {}).items():
            if decl_id in names and alias:
                names[decl_id] = alias

        self._resolve_collisions(names, by_id)
        return names

    def _resolve_collisions(
        self,
        names: FinalNameAssignment,
        by_id: Mapping[DeclarationId, Declaration],
    ) -> None:
        groups: Dict[str, List[DeclarationId]] = defaultdict(list)
        for decl_id, name in names.items():
            groups[name].append(decl_id)

        used = set(names.values())
        for name in sorted(groups):
            ids = sorted(groups[name])
            for decl_id in ids[1:]:
                declaration = by_id[decl_id]
                base = f"{declaration.name}From{pascal_case(file_stem(declaration.file_path))}"
                candidate = base
                counter = 1
                while candidate in used:
                    candidate = f"{base}_{counter}"
                    counter += 1
                used.add(candidate)
                names[decl_id] = candidate
                logger.debug("Renamed colliding declaration", id=str(decl_id), collides_with=name, name=candidate)
