"""Tests for module discovery."""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from modcomply.discovery import DiscoveryOptions, ModuleDiscoverer, discover_module_paths, is_generated
from modcomply.errors import ModuleLoadError, ModuleRootNotFoundError
from modcomply.models import ModuleType


class TestModuleDiscoverer:
    """Tests for ModuleDiscoverer.discover."""

    def test_discover_compliant_module(self, settings, compliant_module: Path):
        """Test that manifest fields and files are captured."""
        module = ModuleDiscoverer(settings).discover(compliant_module)

        assert module.module_id == "billing"
        assert module.name == "billing"
        assert module.version == "1.0.0"
        assert module.path == str(compliant_module.resolve())
        assert module.manifest["scripts"]["build"] == "tsc"
        assert module.has_file("package.json")
        assert module.has_file(".gitignore")
        assert module.has_directory("tests")
        assert module.has_file("tests/index.test.ts")

    def test_files_sorted_with_directories_before_contents(self, settings, compliant_module: Path):
        """Test the depth-first ordering of the file list."""
        paths = [f.path for f in ModuleDiscoverer(settings).discover(compliant_module).files]

        assert paths == [
            ".gitignore",
            "README.md",
            "package.json",
            "src",
            "src/index.ts",
            "tests",
            "tests/index.test.ts",
            "tsconfig.json",
        ]

    def test_missing_directory_raises(self, settings, tmp_path: Path):
        """Test that a nonexistent path is rejected."""
        with pytest.raises(ModuleRootNotFoundError):
            ModuleDiscoverer(settings).discover(tmp_path / "absent")

    def test_directory_without_manifest_raises(self, settings, tmp_path: Path):
        """Test that a directory without a manifest is not a module."""
        (tmp_path / "loose").mkdir()
        (tmp_path / "loose" / "README.md").write_text("# loose\n")

        with pytest.raises(ModuleRootNotFoundError) as exc_info:
            ModuleDiscoverer(settings).discover(tmp_path / "loose")
        assert "package.json" in str(exc_info.value)

    def test_file_path_raises(self, settings, compliant_module: Path):
        """Test that a regular file is not a module root."""
        with pytest.raises(ModuleRootNotFoundError):
            ModuleDiscoverer(settings).discover(compliant_module / "package.json")

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
    def test_malformed_manifest_raises(self, settings, tmp_path: Path, content: str):
        """Test that invalid or non-object manifests fail to load."""
        root = tmp_path / "broken"
        root.mkdir()
        (root / "package.json").write_text(content)

        with pytest.raises(ModuleLoadError):
            ModuleDiscoverer(settings).discover(root)

    def test_ignored_and_hidden_entries(self, make_module, settings):
        """Test that dependency caches and hidden files are skipped."""
        root = make_module("web", files={
            "node_modules/left-pad/index.js": "module.exports = 1;\n",
            "dist/index.js": "compiled\n",
            ".cache/state": "x\n",
            ".env": "PORT=3000\n",
        })

        discoverer = ModuleDiscoverer(settings)
        paths = {f.path for f in discoverer.discover(root).files}
        assert not any(p.startswith(("node_modules", "dist", ".cache")) for p in paths)
        assert ".gitignore" in paths
        assert ".env" in paths

        hidden = {f.path for f in discoverer.discover(root, DiscoveryOptions(include_hidden=True)).files}
        assert ".cache/state" in hidden
        assert not any(p.startswith("node_modules") for p in hidden)

    def test_line_counts_and_generated_flags(self, make_module, settings):
        """Test content analysis of source files."""
        root = make_module("analytics", files={
            "src/big.ts": "".join(f"export const v{i} = {i};\n" for i in range(250)),
            "src/bundle.min.js": "a\nb\n",
            "src/no_newline.ts": "one\ntwo",
        })

        module = ModuleDiscoverer(settings).discover(root)
        files = {f.path: f for f in module.files}
        assert files["src/big.ts"].line_count == 250
        assert files["src/no_newline.ts"].line_count == 2
        assert files["src/bundle.min.js"].generated
        assert not files["src/big.ts"].generated

        unanalyzed = ModuleDiscoverer(settings).discover(root, DiscoveryOptions(analyze_content=False))
        assert all(f.line_count is None for f in unanalyzed.files)

    def test_max_depth(self, make_module, settings):
        """Test that the walk stops at the depth limit."""
        root = make_module("deep", files={"a/b/c/d.ts": "export {};\n"})

        module = ModuleDiscoverer(settings).discover(root, DiscoveryOptions(max_depth=1))
        paths = {f.path for f in module.files}
        assert "a/b" in paths
        assert "a/b/c" not in paths

    def test_heuristic_score(self, settings, compliant_module: Path):
        """Test the discovery-time structural score."""
        module = ModuleDiscoverer(settings).discover(compliant_module)
        # manifest, type config, tests, readme, src
        assert module.compliance_score == 80


class TestModuleTypeInference:
    """Tests for module type inference."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("user-api", ModuleType.API),
            ("shared-types", ModuleType.CORE),
            ("core", ModuleType.CORE),
            ("payment-service", ModuleType.BACKEND),
            ("functions", ModuleType.BACKEND),
            ("formatting", ModuleType.UTILITY),
        ],
    )
    def test_infer_from_name(self, make_module, settings, name: str, expected: ModuleType):
        """Test inference from naming conventions."""
        module = ModuleDiscoverer(settings).discover(make_module(name))
        assert module.module_type == expected

    def test_frontend_dependency_wins(self, make_module, settings):
        """Test that UI framework dependencies mark a frontend."""
        root = make_module("dashboard-api", manifest={
            "name": "dashboard-api",
            "version": "1.0.0",
            "dependencies": {"react": "^18.0.0"},
        })
        assert ModuleDiscoverer(settings).discover(root).module_type == ModuleType.FRONTEND

    def test_manifest_name_wins_over_directory_name(self, make_module, settings):
        """Test that the manifest name decides when the two names disagree."""
        root = make_module("billing-api", manifest={"name": "@acme/shared-core", "version": "1.0.0"})
        assert ModuleDiscoverer(settings).discover(root).module_type == ModuleType.CORE

    def test_inference_stable_across_hash_seeds(self, make_module):
        """Test that inference does not depend on string hash randomisation."""
        root = make_module("billing-api", manifest={"name": "shared-core", "version": "1.0.0"})
        script = (
            "import sys\n"
            "from modcomply.config import ComplianceSettings\n"
            "from modcomply.discovery import ModuleDiscoverer\n"
            "print(ModuleDiscoverer(ComplianceSettings()).discover(sys.argv[1]).module_type.value)\n"
        )

        seen = set()
        for seed in range(6):
            env = {**os.environ, "PYTHONHASHSEED": str(seed)}
            completed = subprocess.run(
                [sys.executable, "-c", script, str(root)],
                env=env, capture_output=True, text=True, check=True,
            )
            seen.add(completed.stdout.strip().splitlines()[-1])

        assert seen == {ModuleType.CORE.value}

    def test_infer_from_layout(self, make_module, settings):
        """Test inference from directory layout."""
        routes = make_module("orders", files={"src/routes/index.ts": "export {};\n"})
        components = make_module("widgets", files={"components/Button.tsx": "export {};\n"})

        discoverer = ModuleDiscoverer(settings)
        assert discoverer.discover(routes).module_type == ModuleType.API
        assert discoverer.discover(components).module_type == ModuleType.FRONTEND


class TestDiscoverModulePaths:
    """Tests for discover_module_paths."""

    def test_finds_modules_without_descending(self, make_module, settings, tmp_path: Path):
        """Test that nested manifests inside a module are not reported."""
        repo = tmp_path / "repo"
        (repo / "packages").mkdir(parents=True)
        (repo / "package.json").write_text(json.dumps({"name": "repo", "private": True}))
        make_module("auth", parent=repo / "packages")
        make_module("billing", parent=repo / "packages",
                    files={"examples/demo/package.json": json.dumps({"name": "demo"})})
        make_module("web", parent=repo / "apps")
        make_module("left-pad", parent=repo / "node_modules")

        paths = discover_module_paths(repo, settings=settings)

        assert paths == sorted([
            (repo / "apps" / "web").resolve(),
            (repo / "packages" / "auth").resolve(),
            (repo / "packages" / "billing").resolve(),
        ])

    def test_include_root(self, make_module, settings, tmp_path: Path):
        """Test that the root is reported only on request."""
        repo = tmp_path / "repo"
        repo.mkdir()
        (repo / "package.json").write_text(json.dumps({"name": "repo"}))
        make_module("core", parent=repo / "packages")

        assert repo.resolve() not in discover_module_paths(repo, settings=settings)
        assert repo.resolve() in discover_module_paths(repo, include_root=True, settings=settings)

    def test_missing_root_yields_nothing(self, settings, tmp_path: Path):
        """Test that an absent root is not an error here."""
        assert discover_module_paths(tmp_path / "absent", settings=settings) == []


def test_is_generated():
    """Test generated-file patterns."""
    assert is_generated("dist/app.min.js")
    assert is_generated("types/index.d.ts")
    assert is_generated("src/schema.generated.ts")
    assert is_generated("proto/user_pb2.py")
    assert not is_generated("src/app.ts")
