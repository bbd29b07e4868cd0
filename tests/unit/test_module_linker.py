"""
Test Module Linker

require()/import_module(): single execution, cycles, structured data,
cross-package references and error wrapping.
"""

import asyncio

import pytest

from modsys.module_system import ModuleState, Package, ResolutionContext
from modsys.shared.errors import (
    CaseConflictFault,
    IOFault,
    LinkError,
    LoadError,
    RedirectCycleFault,
    RequireError,
    UnknownDependencyFault,
)

from tests.test_utils import ROOT, descriptor, load_tree


class TestRequire:
    """Linking loaded modules"""

    @pytest.mark.asyncio
    async def test_factory_runs_once(self):
        package = await load_tree({})
        runs = []

        def factory(require, exports, module, filename, dirname):
            runs.append(filename)
            exports["value"] = len(runs)

        package.lookup_exact("./counter").factory = factory

        first = await package.import_module("./counter")
        second = package.require("./counter")
        third = await package.import_module("./counter")

        assert first is second is third
        assert first == {"value": 1}
        assert runs == ["/counter.py"]
        assert package.lookup("./counter").state == ModuleState.LINKED

    @pytest.mark.asyncio
    async def test_dependencies_linked_on_demand(self):
        package = await load_tree({
            "main.py": 'lib = require("./lib/util")\nexports["doubled"] = lib["double"](21)\n',
            "lib/util.py": 'exports["double"] = lambda x: x * 2\n',
        })
        assert await package.import_module("./main") == {"doubled": 42}
        assert package.lookup("./lib/util").state == ModuleState.LINKED

    @pytest.mark.asyncio
    async def test_module_exports_replacement(self):
        package = await load_tree({"list.py": "module.exports = ['a', 'b']\n"})
        assert await package.import_module("./list") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_exports_are_linked(self):
        package = await load_tree({"empty.py": "pass\n"})
        exports = await package.import_module("./empty")
        assert exports == {}
        assert package.require("./empty") is exports

    @pytest.mark.asyncio
    async def test_json_module_has_no_factory(self):
        package = await load_tree({"data.json": '{"a": 1}'})
        assert await package.import_module("./data.json") == {"a": 1}
        assert package.lookup("./data.json").factory is None

    @pytest.mark.asyncio
    async def test_cycle_sees_partial_exports(self):
        package = await load_tree({
            "x.py": (
                'exports["name"] = "x"\n'
                'y = require("./y")\n'
                'exports["y_name"] = y["name"]\n'
            ),
            "y.py": (
                'exports["name"] = "y"\n'
                'x = require("./x")\n'
                'exports["x_keys"] = sorted(x)\n'
            ),
        })
        x = await package.import_module("./x")
        y = package.require("./y")
        assert x == {"name": "x", "y_name": "y"}
        assert y == {"name": "y", "x_keys": ["name"]}

    @pytest.mark.asyncio
    async def test_diamond_dependency_executes_once(self):
        package = await load_tree({
            "a.py": 'b = require("./b")\nc = require("./c")\nexports["same"] = b["d"] is c["d"]\n',
            "b.py": 'exports["d"] = require("./d")\n',
            "c.py": 'exports["d"] = require("./d")\n',
            "d.py": 'import itertools\nexports["token"] = object()\n',
        })
        assert (await package.import_module("./a"))["same"] is True

    @pytest.mark.asyncio
    async def test_scoped_require_helpers(self):
        package = await load_tree({
            "main.py": (
                'exports["main"] = require.main.filename\n'
                'exports["resolved"] = require.resolve("./lib/b")\n'
                'exports["dirname"] = __dirname__\n'
            ),
        })
        exports = await package.import_module("./main")
        assert exports == {"main": "/main.py", "resolved": "/lib/b.py", "dirname": ""}
        assert package.context.main is package.lookup("./main")

    @pytest.mark.asyncio
    async def test_main_redirect(self):
        package = await load_tree({
            "package.json": descriptor(main="./lib/entry"),
            "lib/entry.py": 'exports["entry"] = True\n',
        })
        assert await package.import_module("./") == {"entry": True}


class TestRequireFaults:
    """Errors surfaced at link time"""

    @pytest.mark.asyncio
    async def test_require_before_load(self):
        package = await load_tree({"a.py": "pass\n"})
        with pytest.raises(LinkError) as excinfo:
            package.require("./a")
        assert "no factory or exports" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_require_while_loading(self):
        package = await load_tree({})
        gate = asyncio.Event()

        async def reader(location, encoding):
            await gate.wait()
            return "pass\n"

        package.context.reader = reader
        pending = asyncio.ensure_future(package.load("./slow"))
        await asyncio.sleep(0)
        with pytest.raises(LinkError) as excinfo:
            package.require("./slow")
        assert "has not finished" in str(excinfo.value)
        gate.set()
        await pending
        assert package.require("./slow") == {}

    @pytest.mark.asyncio
    async def test_load_fault_wrapped(self):
        package = await load_tree({"main.py": 'require("./missing")\n'})
        await package.load("./main")
        with pytest.raises(RequireError) as excinfo:
            package.require("./missing", "main.py")
        error = excinfo.value
        assert isinstance(error.cause, IOFault)
        assert error.__cause__ is error.cause
        assert error.referrer == "main.py"
        assert str(error).startswith('Can\'t require module "missing.py" via "main.py" in "/virtual/app" because')

    @pytest.mark.asyncio
    async def test_dependent_of_failed_module(self):
        package = await load_tree({"main.py": 'require("./missing")\n'})
        await package.load("./main")
        assert package.lookup("./main").error is None

        with pytest.raises(RequireError):
            package.require("./missing")
        with pytest.raises(RequireError) as excinfo:
            package.require("./main")
        assert isinstance(excinfo.value.cause, IOFault)

        # Later requires wrap the error captured from the failed factory
        with pytest.raises(RequireError) as excinfo:
            package.require("./main")
        assert isinstance(excinfo.value.cause.cause, IOFault)

    @pytest.mark.asyncio
    async def test_import_reports_failed_closure(self):
        package = await load_tree({
            "main.py": 'require("./ok")\nrequire("./missing")\n',
            "ok.py": "pass\n",
        })
        with pytest.raises(LoadError) as excinfo:
            await package.import_module("./main")
        failures = excinfo.value.failures
        assert [filename for filename, _ in failures] == ["/missing.py"]
        assert isinstance(excinfo.value.__cause__, IOFault)
        # Nothing was linked
        assert package.lookup("./main").exports is None

    @pytest.mark.asyncio
    async def test_factory_exception_is_terminal(self):
        package = await load_tree({"boom.py": 'exports["partial"] = 1\nraise ValueError("boom")\n'})
        with pytest.raises(ValueError):
            await package.import_module("./boom")
        module = package.lookup_exact("./boom")
        assert module.state == ModuleState.ERRORED
        with pytest.raises(RequireError) as excinfo:
            package.require("./boom")
        assert isinstance(excinfo.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_case_conflict_on_require(self):
        package = await load_tree({"a.py": 'exports["a"] = 1\n'})
        assert await package.import_module("./a") == {"a": 1}
        with pytest.raises(CaseConflictFault) as excinfo:
            package.require("./A")
        assert '"/a.py" and "/A.py"' in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_case_conflict_within_closure(self):
        package = await load_tree({
            "main.py": 'require("./a")\nrequire("./A")\n',
            "a.py": "pass\n",
        })
        with pytest.raises(LoadError) as excinfo:
            await package.import_module("./main")
        assert any(isinstance(error, CaseConflictFault) for _, error in excinfo.value.failures)

    @pytest.mark.asyncio
    async def test_redirect_cycle_on_import(self):
        package = await load_tree({
            "package.json": descriptor(redirects={"./a": "./b", "./b": "./a"}),
        })
        with pytest.raises(RedirectCycleFault):
            await package.import_module("./a")
        with pytest.raises(RequireError) as excinfo:
            package.require("./a")
        assert isinstance(excinfo.value.cause, RedirectCycleFault)


class TestCrossPackage:
    """References into dependency packages"""

    TREE = {
        "package.json": descriptor(name="app", dependencies={"dep": "^1.0"}),
        "main.py": 'dep = require("dep")\nutil = require("dep/lib/util")\nexports["result"] = dep["greet"](util["name"])\n',
        "node_modules/dep/package.json": descriptor(name="dep", main="lib/index"),
        "node_modules/dep/lib/index.py": 'exports["greet"] = lambda name: "hello " + name\n',
        "node_modules/dep/lib/util.py": 'exports["name"] = "world"\n',
    }

    @pytest.mark.asyncio
    async def test_require_across_packages(self):
        package = await load_tree(self.TREE)
        assert await package.import_module("./main") == {"result": "hello world"}
        assert package.context.modules["dep/lib/index.py"].state == ModuleState.LINKED

    @pytest.mark.asyncio
    async def test_import_dependency_main(self):
        package = await load_tree(self.TREE)
        exports = await package.import_module("dep")
        assert exports["greet"]("you") == "hello you"
        assert package.require("dep") is exports

    @pytest.mark.asyncio
    async def test_import_undeclared_fails_before_io(self, counting_reader):
        reader = counting_reader({"package.json": descriptor(name="app")})
        package = await Package.load_package(ROOT, context=ResolutionContext(reader=reader))
        with pytest.raises(UnknownDependencyFault) as excinfo:
            await package.import_module("ghost/x")
        assert excinfo.value.name == "ghost"
        assert list(reader.counts) == [ROOT / "package.json"]

    @pytest.mark.asyncio
    async def test_require_undeclared(self):
        package = await load_tree({"package.json": descriptor(name="app")})
        with pytest.raises(UnknownDependencyFault):
            package.require("ghost")

    @pytest.mark.asyncio
    async def test_unnamed_root_does_not_shadow_dependency(self):
        package = await load_tree({
            "package.json": descriptor(dependencies={"dep": "*"}),
            "main.py": (
                'exports["local"] = require("./dep/x")["who"]\n'
                'exports["dep"] = require("dep/x")["who"]\n'
            ),
            "dep/x.py": 'exports["who"] = "root"\n',
            "node_modules/dep/package.json": descriptor(name="dep"),
            "node_modules/dep/x.py": 'exports["who"] = "dep"\n',
        })
        assert await package.import_module("./main") == {"local": "root", "dep": "dep"}
        assert package.lookup("./dep/x").key == "/dep/x.py"
        assert package.lookup("dep/x").key == "dep/x.py"

    @pytest.mark.asyncio
    async def test_require_unloaded_dependency(self):
        package = await load_tree(self.TREE)
        with pytest.raises(LinkError) as excinfo:
            package.require("dep")
        assert 'dependency "dep" has not been loaded' in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_optional_undeclared_reference_in_body(self):
        package = await load_tree({
            "main.py": (
                "try:\n"
                '    require("optional")\n'
                "    exports['optional'] = True\n"
                "except Exception:\n"
                "    exports['optional'] = False\n"
            ),
        })
        assert await package.import_module("./main") == {"optional": False}
