"""
Tests for the project symbol table: override detection across files.
"""

from pathlib import Path
import sys

# Add the server directory to the path for importing
server_dir = Path(__file__).parent.parent
sys.path.insert(0, str(server_dir))

from engine.php_adapter import PhpAdapter
from engine.symbol_index import FunctionSymbol, MethodSymbol, PhpSymbolTable, build_symbol_index
from engine.types import Visibility


def build_table(sources):
    """Build a linked table from {file_path: code}."""
    adapter = PhpAdapter()
    trees = {path: adapter.parse(code) for path, code in sources.items()}
    return build_symbol_index(list(sources), adapter, trees)


def symbol_for(table, sources, path, needle):
    """Resolve the declaration whose source starts at ``needle``."""
    code = sources[path]
    start = len(code[:code.index(needle)].encode("utf-8"))
    return table.function_like_at(path, start)


def method_symbol(table, path, name):
    outline = table.get_outline(path)
    for decl in outline.declarations:
        if decl.node.name == name:
            return table.function_like_at(path, decl.node.start_byte)
    raise AssertionError(f"No method {name} in {path}")


class TestMethodSymbols:

    def test_free_function_and_closure(self):
        sources = {"f.php": "<?php\nnamespace App;\nfunction helper() {}\n$f = function () {};\n"}
        table = build_table(sources)

        helper = symbol_for(table, sources, "f.php", "function helper")
        closure = symbol_for(table, sources, "f.php", "function ()")

        assert isinstance(helper, FunctionSymbol)
        assert not helper.is_closure
        assert helper.representation_for_issue() == "\\App\\helper()"
        assert isinstance(closure, FunctionSymbol)
        assert closure.is_closure
        assert closure.representation_for_issue() == "\\App\\{closure}()"
        assert not closure.is_override and not closure.is_overridden_by_another

    def test_method_symbol_fields(self):
        sources = {"a.php": "<?php\nnamespace App;\nclass A {\n    private function __construct() {}\n}\n"}
        table = build_table(sources)
        ctor = method_symbol(table, "a.php", "__construct")

        assert isinstance(ctor, MethodSymbol)
        assert ctor.is_new_constructor
        assert ctor.visibility is Visibility.PRIVATE
        assert ctor.line == 4
        assert ctor.representation_for_issue() == "\\App\\A::__construct()"

    def test_unknown_position_resolves_to_nothing(self):
        table = build_table({"a.php": "<?php\nfunction f() {}\n"})
        assert table.function_like_at("a.php", 1) is None
        assert table.function_like_at("other.php", 6) is None


class TestOverrides:

    def test_parent_and_child_across_files(self):
        sources = {
            "base.php": "<?php\nnamespace App;\nclass Base {\n    protected function boot() {}\n}\n",
            "child.php": "<?php\nnamespace App\\Http;\nuse App\\Base;\nclass Child extends Base {\n    protected function boot() {}\n}\n",
        }
        table = build_table(sources)

        parent_boot = method_symbol(table, "base.php", "boot")
        child_boot = method_symbol(table, "child.php", "boot")

        assert parent_boot.is_overridden_by_another
        assert not parent_boot.is_override
        assert child_boot.is_override
        assert not child_boot.is_overridden_by_another

    def test_grandparent_override(self):
        sources = {"a.php": """<?php
class A { public function run() {} }
class B extends A {}
class C extends B { public function run() {} }
"""}
        table = build_table(sources)
        outline = table.get_outline("a.php")
        a_run, c_run = [table.function_like_at("a.php", d.node.start_byte) for d in outline.declarations]

        assert a_run.is_overridden_by_another
        assert c_run.is_override

    def test_interface_implementation(self):
        sources = {
            "contract.php": "<?php\ninterface Handler {\n    public function handle();\n}\n",
            "impl.php": "<?php\nclass Impl implements Handler {\n    public function handle() {}\n}\n",
        }
        table = build_table(sources)

        assert method_symbol(table, "impl.php", "handle").is_override
        assert method_symbol(table, "contract.php", "handle").is_overridden_by_another

    def test_trait_methods(self):
        sources = {"t.php": """<?php
trait Hooks {
    private function beforeSave() {}
}
class Model {
    use Hooks;
    private function beforeSave() {}
}
"""}
        table = build_table(sources)
        outline = table.get_outline("t.php")
        trait_hook, model_hook = [table.function_like_at("t.php", d.node.start_byte) for d in outline.declarations]

        assert trait_hook.is_overridden_by_another
        assert model_hook.is_override

    def test_private_parent_method_is_not_overridden(self):
        sources = {"p.php": """<?php
class Base { private function secret() {} }
class Child extends Base { private function secret() {} }
"""}
        table = build_table(sources)
        outline = table.get_outline("p.php")
        base_secret, child_secret = [table.function_like_at("p.php", d.node.start_byte) for d in outline.declarations]

        assert not base_secret.is_overridden_by_another
        assert not child_secret.is_override

    def test_method_names_are_case_insensitive(self):
        sources = {"c.php": """<?php
class Base { public function Render() {} }
class Page extends Base { public function render() {} }
"""}
        table = build_table(sources)
        outline = table.get_outline("c.php")
        _, page_render = [table.function_like_at("c.php", d.node.start_byte) for d in outline.declarations]

        assert page_render.is_override

    def test_unknown_parent_gives_no_override(self):
        sources = {"e.php": "<?php\nclass Command extends \\Symfony\\Command {\n    public function configure() {}\n}\n"}
        table = build_table(sources)
        configure = method_symbol(table, "e.php", "configure")

        assert not configure.is_override
        assert table.ancestors_of("Command") == set()

    def test_inheritance_cycle_terminates(self):
        sources = {"x.php": "<?php\nclass A extends B { public function f() {} }\nclass B extends A {}\n"}
        table = build_table(sources)

        assert table.ancestors_of("A") == {"b"}
        assert method_symbol(table, "x.php", "f") is not None

    def test_anonymous_class_extending_known_parent(self):
        sources = {"n.php": """<?php
class Listener { public function handle() {} }
$l = new class extends Listener {
    public function handle() {}
};
"""}
        table = build_table(sources)
        outline = table.get_outline("n.php")
        base, anon = [table.function_like_at("n.php", d.node.start_byte) for d in outline.declarations]

        assert base.is_overridden_by_another
        assert anon.is_override
        assert anon.representation_for_issue() == "class@anonymous::handle()"


class TestTableBookkeeping:

    def test_stats_and_len(self):
        sources = {"s.php": "<?php\nclass A { public function a() {} }\nfunction b() {}\n$c = function () {};\n"}
        table = build_table(sources)

        assert len(table) == 3
        assert table.get_stats() == {
            "files": 1,
            "class_likes": 1,
            "methods": 1,
            "functions": 1,
            "closures": 1,
        }

    def test_get_class_like(self):
        table = build_table({"k.php": "<?php\nnamespace Ns;\nclass Klass {}\n"})

        infos = table.get_class_like("\\Ns\\Klass")
        assert len(infos) == 1
        assert infos[0].fq_name == "Ns\\Klass"

    def test_lookup_links_lazily(self):
        adapter = PhpAdapter()
        code = "<?php\nfunction f() {}\n"
        table = PhpSymbolTable()
        table.add_outline("l.php", adapter.outline(adapter.parse(code), "l.php"))

        symbol = table.function_like_at("l.php", code.index("function"))
        assert isinstance(symbol, FunctionSymbol)

    def test_unreadable_file_is_skipped(self, tmp_path):
        good = tmp_path / "good.php"
        good.write_text("<?php\nfunction ok() {}\n")

        table = build_symbol_index([str(good), str(tmp_path / "missing.php")], PhpAdapter())

        assert table.get_stats()["functions"] == 1
