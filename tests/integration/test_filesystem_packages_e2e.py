"""
End-to-end tests for package trees on disk

Builds real directories under tmp_path and reads them through the default
filesystem reader.
"""

import json

import pytest

from modsys.module_system import Package, ResolutionContext
from modsys.shared.errors import IOFault, LoadError, ParseFault


def write_tree(root, files):
    for name, text in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")


class TestFilesystemPackagesE2E:
    """Packages read from the filesystem"""

    @pytest.mark.asyncio
    async def test_nested_dependencies(self, tmp_path):
        write_tree(tmp_path, {
            "package.json": json.dumps({"name": "app", "main": "./src/main", "dependencies": {"greeter": "1"}}),
            "src/main.py": (
                'greeter = require("greeter")\n'
                'settings = require("../config.json")\n'
                'exports["message"] = greeter["greet"](settings["who"])\n'
            ),
            "config.json": json.dumps({"who": "disk"}),
            "node_modules/greeter/package.json": json.dumps({"name": "greeter", "dependencies": {"punct": "1"}}),
            "node_modules/greeter/index.py": (
                'punct = require("punct")\n'
                'exports["greet"] = lambda who: "hello " + who + punct["mark"]\n'
            ),
            "node_modules/greeter/node_modules/punct/package.json": json.dumps({"name": "punct"}),
            "node_modules/greeter/node_modules/punct/index.py": 'exports["mark"] = "!"\n',
        })
        package = await Package.load_package(tmp_path)
        exports = await package.import_module("./")
        assert exports == {"message": "hello disk!"}

        punct = package.context.systems["punct"]
        assert punct.location == tmp_path / "node_modules" / "greeter" / "node_modules" / "punct"
        assert punct.parent is package.context.systems["greeter"]

    @pytest.mark.asyncio
    async def test_missing_module_file(self, tmp_path):
        write_tree(tmp_path, {
            "package.json": "{}",
            "index.py": 'require("./gone")\n',
        })
        package = await Package.load_package(tmp_path)
        with pytest.raises(LoadError) as excinfo:
            await package.import_module("./")
        filename, error = excinfo.value.failures[0]
        assert filename == "/gone.py"
        assert isinstance(error, IOFault)
        assert error.location == tmp_path / "gone.py"

    @pytest.mark.asyncio
    async def test_missing_descriptor(self, tmp_path):
        with pytest.raises(IOFault):
            await Package.load_package(tmp_path / "nowhere")

    @pytest.mark.asyncio
    async def test_malformed_descriptor(self, tmp_path):
        write_tree(tmp_path, {"package.json": "{not json"})
        with pytest.raises(ParseFault) as excinfo:
            await Package.load_package(tmp_path)
        assert "package.json" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_missing_dependency_descriptor(self, tmp_path):
        write_tree(tmp_path, {
            "package.json": json.dumps({"dependencies": {"absent": "1"}}),
            "index.py": 'require("absent")\n',
        })
        package = await Package.load_package(tmp_path)
        with pytest.raises(LoadError) as excinfo:
            await package.import_module("./")
        filename, error = excinfo.value.failures[0]
        assert filename == "/index.py"
        assert isinstance(error, IOFault)
        assert error.location == tmp_path / "node_modules" / "absent" / "package.json"

    @pytest.mark.asyncio
    async def test_browser_overlay(self, tmp_path):
        write_tree(tmp_path, {
            "package.json": json.dumps({"browser": {"./server": "./client"}}),
            "index.py": 'exports["side"] = require("./server")["side"]\n',
            "server.py": 'exports["side"] = "server"\n',
            "client.py": 'exports["side"] = "client"\n',
        })
        browser = await Package.load_package(tmp_path, context=ResolutionContext(browser=True))
        assert await browser.import_module("./") == {"side": "client"}

        plain = await Package.load_package(tmp_path)
        assert await plain.import_module("./") == {"side": "server"}

    @pytest.mark.asyncio
    async def test_overlay_shadows_disk(self, tmp_path):
        write_tree(tmp_path, {"package.json": "{}", "index.py": 'exports["source"] = "disk"\n'})
        context = ResolutionContext()
        context.add_source(tmp_path / "index.py", 'exports["source"] = "memory"\n')
        package = await Package.load_package(tmp_path, context=context)
        assert await package.import_module("./") == {"source": "memory"}
