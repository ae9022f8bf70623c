import os
from pathlib import Path

import pytest

from tsbundle.bundler import TypeBundler, generate_bundle, parse_entry
from tsbundle.errors import ConfigError
from tsbundle.settings import BundleSettings


def _bundle(root: Path, entry: str, type_name: str, **kwargs) -> str:
    return generate_bundle(str(root / entry), type_name, project_root=str(root), **kwargs)


def test_no_dependencies_returns_single_declaration(write_files):
    root = write_files({
        "a.ts": "export interface Lonely { id: string }\nexport interface Other { x: number }\n",
    })
    assert _bundle(root, "a.ts", "Lonely") == "export interface Lonely { id: string }\n"


def test_type_not_found_is_empty(write_files):
    root = write_files({"a.ts": "export interface A {}\n"})
    assert _bundle(root, "a.ts", "Missing") == ""
    assert _bundle(root, "does-not-exist.ts", "A") == ""


def test_unresolvable_reference_preserved(write_files):
    root = write_files({
        "a.ts": (
            "import { External } from 'some-package';\n"
            "import { Broken } from './broken';\n"
            "export interface A { e: External; b: Broken; u: Unknown }\n"
        ),
    })
    (root / "broken.ts").write_bytes(b"export interface Broken { \xff }")

    out = _bundle(root, "a.ts", "A")
    assert out == "export interface A { e: External; b: Broken; u: Unknown }\n"


def test_transitive_dependencies_sorted_by_final_name(write_files):
    root = write_files({
        "models/user.ts": (
            "import { Role } from './role';\n"
            "export interface User { role: Role; address: Address }\n"
            "interface Address { city: string }\n"
        ),
        "models/role.ts": "export enum Role { Admin = 'admin', Guest = 'guest' }\n",
        "index.ts": "import { User } from './models/user';\nexport type Team = { members: User[] };\n",
    })

    out = _bundle(root, "index.ts", "Team")
    assert out == (
        "interface Address { city: string }\n\n"
        "export enum Role { Admin = 'admin', Guest = 'guest' }\n\n"
        "export type Team = { members: User[] };\n\n"
        "export interface User { role: Role; address: Address }\n"
    )


def test_collision_renamed_deterministically(write_files):
    root = write_files({
        "a.ts": "export interface T { a: string }\n",
        "b.ts": "export interface T { b: string }\nexport interface UsesT { t: T }\n",
        "index.ts": (
            "import { T } from './a';\n"
            "import { UsesT } from './b';\n"
            "export interface Root { a: T; b: UsesT }\n"
        ),
    })
    out = _bundle(root, "index.ts", "Root")

    assert out == (
        "export interface Root { a: T; b: UsesT }\n\n"
        "export interface T { a: string }\n\n"
        "export interface TFromB { b: string }\n\n"
        "export interface UsesT { t: TFromB }\n"
    )
    assert all(_bundle(root, "index.ts", "Root") == out for _ in range(3))


def test_import_alias_becomes_final_name(write_files):
    root = write_files({
        "a.ts": "export type T = { a: string };\n",
        "b.ts": "export type T = { b: string };\n",
        "index.ts": (
            "import { T } from './a';\n"
            "import { T as BT } from './b';\n"
            "export interface Both { a: T; b: BT }\n"
        ),
    })
    out = _bundle(root, "index.ts", "Both")

    assert "export type BT = { b: string };" in out
    assert "export type T = { a: string };" in out
    assert "export interface Both { a: T; b: BT }" in out


def test_namespace_name_beats_import_alias(write_files):
    root = write_files({
        "alpha.ts": "export interface Item { a: string }\n",
        "beta.ts": "export interface Item { b: string }\n",
        "index.ts": (
            "import * as alpha from './alpha';\n"
            "import { Item as OtherItem } from './alpha';\n"
            "import { Item } from './beta';\n"
            "export interface Uses { item: Item }\n"
            "export interface Wrapper { uses: Uses; other: OtherItem }\n"
        ),
    })
    out = _bundle(root, "index.ts", "Wrapper")

    assert "export interface alpha_Item { a: string }" in out
    assert "export interface Item { b: string }" in out
    assert "export interface Wrapper { uses: Uses; other: alpha_Item }" in out


def test_merged_entries_with_same_name(write_files):
    root = write_files({
        "one/shape.ts": "export interface Shape { one: true }\n",
        "two/shape.ts": "export interface Shape { two: true }\n",
    })
    bundler = TypeBundler(BundleSettings(project_root=str(root)))
    entries = [parse_entry(f"{root / 'two/shape.ts'}:Shape"), parse_entry(f"{root / 'one/shape.ts'}:Shape")]

    assert bundler.bundle(entries) == (
        "export interface Shape { one: true }\n\n"
        "export interface ShapeFromShape { two: true }\n"
    )


def test_namespace_flattening(write_files):
    root = write_files({
        "m.ts": "export interface Foo { id: string }\n",
        "index.ts": "import * as ns from './m';\nexport type Alias = ns.Foo;\n",
    })
    out = _bundle(root, "index.ts", "Alias")

    assert out == (
        "export type Alias = ns_Foo;\n\n"
        "export interface ns_Foo { id: string }\n"
    )


def test_namespace_member_of_default_export(write_files):
    root = write_files({
        "f.ts": "interface props { id: string }\nexport default props;\n",
        "index.ts": "import * as m from './f';\nexport type Uses = m.props;\n",
    })
    out = _bundle(root, "index.ts", "Uses")

    assert out == "export type Uses = m_props;\n\ninterface m_props { id: string }\n"


def test_default_export_identity_stable(write_files):
    root = write_files({
        "f.ts": "interface Foo { id: string }\nexport default Foo;\n",
        "index.ts": "import Local from './f';\nexport interface Holder { value: Local }\n",
    })
    out = _bundle(root, "index.ts", "Holder")

    assert "interface Foo { id: string }" in out
    assert "export interface Holder { value: Foo }" in out
    assert "Local" not in out


def test_cycle_produces_complete_bundle(write_files):
    root = write_files({
        "a.ts": "import { B } from './b';\nexport interface A { b?: B }\n",
        "b.ts": "import { A } from './a';\nexport interface B { a?: A }\n",
    })
    out = _bundle(root, "a.ts", "A")

    assert out == "export interface A { b?: B }\n\nexport interface B { a?: A }\n"


def test_enum_member_reference_renames_prefix(write_files):
    root = write_files({
        "status.ts": "export enum Status { Active = 'active', Gone = 'gone' }\n",
        "index.ts": (
            "import { Status as State } from './status';\n"
            "export interface Filter { only: State.Active }\n"
        ),
    })
    out = _bundle(root, "index.ts", "Filter")

    assert "export enum State { Active = 'active', Gone = 'gone' }" in out
    assert "export interface Filter { only: State.Active }" in out


def test_entry_alias(write_files):
    root = write_files({"a.ts": "export interface User { id: string }\nexport type Users = User[];\n"})

    out = _bundle(root, "a.ts", "Users", alias="UserList")
    assert out == "export interface User { id: string }\n\nexport type UserList = User[];\n"


def test_generic_parameters_not_renamed(write_files):
    root = write_files({
        "t.ts": "export interface T { x: 1 }\n",
        "index.ts": (
            "import { T as Imported } from './t';\n"
            "export type Box<T> = { value: T; extra: Imported };\n"
        ),
    })
    out = _bundle(root, "index.ts", "Box")

    assert "export type Box<T> = { value: T; extra: Imported };" in out
    assert "export interface Imported { x: 1 }" in out


def test_tsconfig_path_alias(write_files):
    root = write_files({
        "tsconfig.json": '{ "compilerOptions": { "baseUrl": ".", "paths": { "@/*": ["src/*"] } } }',
        "src/models/user.ts": "export interface User { id: string }\n",
        "src/index.ts": "import { User } from '@/models/user';\nexport type Owner = User;\n",
    })
    out = generate_bundle(str(root / "src/index.ts"), "Owner")

    assert out == "export type Owner = User;\n\nexport interface User { id: string }\n"


def test_generate_bundle_requires_type(write_files):
    root = write_files({"a.ts": "export interface A {}\n"})
    with pytest.raises(ConfigError):
        _bundle(root, "a.ts", "")


@pytest.mark.parametrize(
    "entry, path, type_name, alias",
    [
        ("/p/a.ts:User", "/p/a.ts", "User", None),
        ("/p/a.ts:User:UserDTO", "/p/a.ts", "User", "UserDTO"),
        (" /p/a.ts : User ", "/p/a.ts", "User", None),
    ],
)
def test_parse_entry(entry, path, type_name, alias):
    parsed = parse_entry(entry)
    assert parsed.file_path == os.path.abspath(path)
    assert parsed.type_name == type_name
    assert parsed.alias == alias
    assert parsed.output_name == (alias or type_name)
    assert parsed.raw == entry


def test_parse_entry_keeps_windows_drive():
    parsed = parse_entry(r"C:\src\a.ts:User:Alias")
    assert parsed.file_path.endswith(r"C:\src\a.ts")
    assert parsed.type_name == "User"
    assert parsed.alias == "Alias"


@pytest.mark.parametrize("entry", ["/p/a.ts", "/p/a.ts:", ":User", "/p/a.ts:User:Alias:Extra", "/p/a.ts:User:"])
def test_parse_entry_malformed(entry):
    with pytest.raises(ConfigError):
        parse_entry(entry)
