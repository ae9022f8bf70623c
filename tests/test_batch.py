from pathlib import Path

from tsbundle.bundler import generate_batch_bundle, generate_batch_bundles_to_files, generate_bundle
from tsbundle.settings import BundleSettings


def _project(write_files) -> Path:
    return write_files({
        "src/user.ts": (
            "import { Role } from './role';\n"
            "export interface User { id: string; role: Role }\n"
            "export interface Address { city: string }\n"
        ),
        "src/role.ts": "export enum Role { Admin, Guest }\n",
        "src/team.ts": "import { User } from './user';\nexport interface Team { members: User[] }\n",
    })


def test_same_file_parsed_once(write_files, counting_parser):
    root = _project(write_files)
    user = root / "src/user.ts"

    result = generate_batch_bundle(
        [f"{user}:User", f"{user}:Address", f"{root / 'src/team.ts'}:Team"],
        settings=BundleSettings(project_root=str(root)),
        parser=counting_parser,
    )

    assert result.ok
    assert counting_parser.calls[str(user)] == 1
    assert counting_parser.calls[str(root / "src/role.ts")] == 1
    assert set(counting_parser.calls.values()) == {1}


def test_merged_bundle(write_files):
    root = _project(write_files)
    result = generate_batch_bundle(
        [f"{root / 'src/user.ts'}:User:UserDTO", f"{root / 'src/team.ts'}:Team"],
        project_root=str(root),
    )

    assert result.ok
    assert result.files == []
    assert result.content == (
        "export enum Role { Admin, Guest }\n\n"
        "export interface Team { members: UserDTO[] }\n\n"
        "export interface UserDTO { id: string; role: Role }\n"
    )


def test_malformed_entry_does_not_abort_batch(write_files):
    root = _project(write_files)
    result = generate_batch_bundle(
        ["no-type-here", f"{root / 'src/role.ts'}:Role", f"{root / 'src/role.ts'}:"],
        project_root=str(root),
    )

    assert not result.ok
    assert [e.entry for e in result.errors] == ["no-type-here", f"{root / 'src/role.ts'}:"]
    assert result.content == "export enum Role { Admin, Guest }\n"


def test_only_malformed_entries():
    result = generate_batch_bundle(["bad"])
    assert result.content == ""
    assert len(result.errors) == 1


def test_bundles_to_files(write_files, tmp_path, counting_parser):
    root = _project(write_files)
    out_dir = tmp_path / "out" / "nested"

    result = generate_batch_bundles_to_files(
        [
            f"{root / 'src/user.ts'}:User",
            f"{root / 'src/team.ts'}:Team:TeamDTO",
            f"{root / 'src/user.ts'}:Missing",
            "broken-entry",
        ],
        str(out_dir),
        settings=BundleSettings(project_root=str(root)),
        parser=counting_parser,
    )

    assert [f.file_name for f in result.files] == ["User.d.ts", "TeamDTO.d.ts"]
    assert [e.entry for e in result.errors] == ["broken-entry"]

    user_file = out_dir / "User.d.ts"
    assert user_file.read_text(encoding="utf-8") == (
        "export enum Role { Admin, Guest }\n\n"
        "export interface User { id: string; role: Role }\n"
    )
    assert result.files[0].file_path == str(user_file)
    assert result.files[0].content_size == len(user_file.read_text(encoding="utf-8"))

    team_text = (out_dir / "TeamDTO.d.ts").read_text(encoding="utf-8")
    assert "export interface TeamDTO { members: User[] }" in team_text

    # the missing type produces no file
    assert sorted(p.name for p in out_dir.iterdir()) == ["TeamDTO.d.ts", "User.d.ts"]
    # files shared by several entries are parsed a single time
    assert counting_parser.calls[str(root / "src/user.ts")] == 1


def test_per_file_output_does_not_depend_on_entry_order(write_files, tmp_path):
    root = write_files({
        "src/user.ts": "export interface User { id: string }\n",
        "src/team.ts": "import { User as Member } from './user';\nexport interface Team { lead: Member }\n",
    })
    user_entry = f"{root / 'src/user.ts'}:User"
    team_entry = f"{root / 'src/team.ts'}:Team"
    settings = BundleSettings(project_root=str(root))

    alone = generate_batch_bundles_to_files([user_entry], str(tmp_path / "alone"), settings=settings)
    after_team = generate_batch_bundles_to_files(
        [team_entry, user_entry], str(tmp_path / "after_team"), settings=settings
    )
    assert alone.ok and after_team.ok

    user_text = (tmp_path / "alone" / "User.d.ts").read_text(encoding="utf-8")
    assert user_text == "export interface User { id: string }\n"
    assert (tmp_path / "after_team" / "User.d.ts").read_text(encoding="utf-8") == user_text
    assert generate_bundle(str(root / "src/user.ts"), "User", settings=settings) == user_text

    # the alias still applies where the importing file is part of the bundle
    team_text = (tmp_path / "after_team" / "Team.d.ts").read_text(encoding="utf-8")
    assert team_text == (
        "export interface Member { id: string }\n\n"
        "export interface Team { lead: Member }\n"
    )
