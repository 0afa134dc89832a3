"""casesmith core — synthesize test cases from the branches of Python functions."""
import ast
import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

NEGATION_SUFFIX = "_x"


class _Unextractable:
    def __repr__(self):
        return "UNEXTRACTABLE"


UNEXTRACTABLE = _Unextractable()


@dataclass
class Case:
    args: dict
    expected: object
    shape: str = ""
    line: int = 0

    @property
    def has_expected(self) -> bool:
        return self.expected is not UNEXTRACTABLE


@dataclass
class FunctionReport:
    name: str
    params: list
    line: int
    cases: list = field(default_factory=list)


@dataclass
class ModuleReport:
    file: str
    functions: list = field(default_factory=list)
    classes: dict = field(default_factory=dict)


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _literal(node):
    """Return the int/str/bool a node spells out, or UNEXTRACTABLE."""
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, str)):
        return node.value
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.USub):
        if isinstance(node.operand, ast.Constant) and _is_int(node.operand.value):
            return -node.operand.value
    return UNEXTRACTABLE


def _subject(node, params):
    if isinstance(node, ast.Name) and node.id in params:
        return node.id
    return None


def negate(value):
    """Return a value that differs from ``value``, or None when there is none.

    Integers step one below, strings get NEGATION_SUFFIX appended and
    booleans flip. Only booleans round-trip through a double negation.
    """
    if isinstance(value, bool):
        return not value
    if isinstance(value, int):
        return value - 1
    if isinstance(value, str):
        return value + NEGATION_SUFFIX
    return None


def extract_return(stmts):
    """Literal returned by the first return statement in ``stmts``."""
    for stmt in stmts:
        if isinstance(stmt, ast.Return):
            if stmt.value is None:
                return UNEXTRACTABLE
            return _literal(stmt.value)
    return UNEXTRACTABLE


def function_params(fn: ast.FunctionDef) -> list[str]:
    args = fn.args
    return [a.arg for a in args.posonlyargs + args.args + args.kwonlyargs]


def _if_chain(node: ast.If):
    """Flatten an if/elif/else chain into its arms and the final else body."""
    arms = [node]
    orelse = node.orelse
    while len(orelse) == 1 and isinstance(orelse[0], ast.If):
        arms.append(orelse[0])
        orelse = orelse[0].orelse
    return arms, orelse


def extract_comparison(test, body, orelse, params) -> list[Case]:
    """Cases for ``param > L`` and ``param == L`` / ``param is L``."""
    if not (isinstance(test, ast.Compare) and len(test.ops) == 1):
        return []
    op = test.ops[0]
    if not isinstance(op, (ast.Gt, ast.Eq, ast.Is)):
        return []
    name = _subject(test.left, params)
    lit = _literal(test.comparators[0])
    if name is None or lit is UNEXTRACTABLE:
        return []
    if isinstance(op, ast.Gt) and not _is_int(lit):
        logger.debug("line %d: %s > %r is not an integer threshold",
                     test.lineno, name, lit)
        return []

    ret_true, ret_false = extract_return(body), extract_return(orelse)
    if ret_true is UNEXTRACTABLE or ret_false is UNEXTRACTABLE:
        logger.debug("line %d: branches of %s have no literal returns",
                     test.lineno, ast.unparse(test))
        return []

    if isinstance(op, ast.Gt):
        probes = ((lit + 1, ret_true), (lit, ret_false))
    else:
        probes = ((lit, ret_true), (negate(lit), ret_false))
    return [Case({name: v}, exp, "comparison", test.lineno) for v, exp in probes]


def extract_membership(test, body, orelse, params) -> list[Case]:
    """Cases for ``param in (L1, L2, ...)`` and its ``not in`` form."""
    if not (isinstance(test, ast.Compare) and len(test.ops) == 1
            and isinstance(test.ops[0], (ast.In, ast.NotIn))):
        return []
    name = _subject(test.left, params)
    seq = test.comparators[0]
    if name is None or not isinstance(seq, (ast.Tuple, ast.List, ast.Set)):
        return []

    members = []
    for elt in seq.elts:
        v = _literal(elt)
        if v is not UNEXTRACTABLE and not isinstance(v, bool):
            members.append(v)

    ret_in, ret_out = extract_return(body), extract_return(orelse)
    if isinstance(test.ops[0], ast.NotIn):
        ret_in, ret_out = ret_out, ret_in

    cases = []
    if ret_in is not UNEXTRACTABLE:
        cases.extend(Case({name: v}, ret_in, "membership", test.lineno)
                     for v in members)
    if members and ret_out is not UNEXTRACTABLE:
        cases.append(Case({name: negate(members[0])}, ret_out,
                          "membership", test.lineno))
    if not cases:
        logger.debug("line %d: membership test on %s produced no cases",
                     test.lineno, name)
    return cases


def _arm_literals(pattern):
    if isinstance(pattern, ast.MatchValue):
        v = _literal(pattern.value)
        if v is not UNEXTRACTABLE and not isinstance(v, bool):
            return [v]
        return []
    if isinstance(pattern, ast.MatchOr):
        values = []
        for p in pattern.patterns:
            values.extend(_arm_literals(p))
        return values
    return []


def _is_default_arm(pattern):
    return isinstance(pattern, ast.MatchAs) and pattern.pattern is None


def extract_dispatch(node: ast.Match, params, samples: dict) -> list[Case]:
    """Cases for every literal arm of ``match param:`` and its default arm.

    ``samples`` maps a parameter to the first value bound to it by an
    earlier case; the default arm probes with the negation of that value
    (or of this dispatch's first case when nothing came earlier).
    """
    name = _subject(node.subject, params)
    if name is None:
        return []

    cases = []
    for arm in node.cases:
        if arm.guard is not None:
            continue
        ret = extract_return(arm.body)
        if ret is UNEXTRACTABLE:
            continue
        if _is_default_arm(arm.pattern):
            if name in samples:
                sample = samples[name]
            elif cases:
                sample = cases[0].args[name]
            else:
                # nothing known about the parameter yet; negate(None) is None
                sample = None
            cases.append(Case({name: negate(sample)}, ret, "dispatch",
                              arm.pattern.lineno))
            continue
        for v in _arm_literals(arm.pattern):
            cases.append(Case({name: v}, ret, "dispatch", arm.pattern.lineno))
    return cases


class _Walker(ast.NodeVisitor):
    def __init__(self, params):
        self.params = params
        self.cases: list[Case] = []
        self.samples: dict = {}

    def _add(self, cases):
        for case in cases:
            for name, value in case.args.items():
                self.samples.setdefault(name, value)
        self.cases.extend(cases)

    def walk(self, stmts):
        for stmt in stmts:
            self.visit(stmt)

    def visit_If(self, node: ast.If):
        arms, orelse = _if_chain(node)
        for arm in arms:
            found = extract_comparison(arm.test, arm.body, orelse, self.params)
            if not found:
                found = extract_membership(arm.test, arm.body, orelse, self.params)
            self._add(found)
            self.walk(arm.body)
        self.walk(orelse)

    def visit_Match(self, node: ast.Match):
        self._add(extract_dispatch(node, self.params, self.samples))
        for arm in node.cases:
            self.walk(arm.body)

    # Nested definitions are separate functions.
    def visit_FunctionDef(self, node):
        pass

    visit_AsyncFunctionDef = visit_FunctionDef
    visit_ClassDef = visit_FunctionDef
    visit_Lambda = visit_FunctionDef


def _outer_guard(stmt, params):
    if not (isinstance(stmt, ast.If) and isinstance(stmt.test, ast.Compare)
            and len(stmt.test.ops) == 1 and isinstance(stmt.test.ops[0], ast.Gt)):
        return None
    name = _subject(stmt.test.left, params)
    lit = _literal(stmt.test.comparators[0])
    if name is None or not _is_int(lit):
        return None
    return name, lit


def analyze(fn: ast.FunctionDef, params=None) -> list[Case]:
    """Synthesize test cases from the branches of one function.

    Cases come out in depth-first source order. When the function opens
    with an ``if param > N:`` guard and ends in a literal return, one
    last case binds ``param`` to ``N`` and expects that return.
    """
    if params is None:
        params = function_params(fn)
    params = set(params)

    default = UNEXTRACTABLE
    guard = None
    for stmt in fn.body:
        if isinstance(stmt, ast.Return):
            default = extract_return([stmt])
        if guard is None:
            guard = _outer_guard(stmt, params)

    walker = _Walker(params)
    walker.walk(fn.body)

    if guard is not None and default is not UNEXTRACTABLE:
        name, lit = guard
        walker.cases.append(Case({name: lit}, default, "guard", fn.lineno))
    return walker.cases


def _public_methods(cls: ast.ClassDef):
    return [n.name for n in cls.body
            if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef))
            and not n.name.startswith("_")]


def analyze_source(source: str, filename: str = "<stdin>") -> ModuleReport:
    report = ModuleReport(filename)
    for node in ast.parse(source, filename).body:
        if isinstance(node, ast.FunctionDef) and not node.name.startswith("_"):
            params = function_params(node)
            report.functions.append(FunctionReport(
                node.name, params, node.lineno, analyze(node, params)))
        elif isinstance(node, ast.ClassDef):
            report.classes[node.name] = _public_methods(node)
    return report


def _kwargs_literal(case: Case) -> str:
    return "{" + ", ".join(f"{k!r}: {v!r}" for k, v in case.args.items()) + "}"


def generate_test_file(report: ModuleReport, module: str) -> str:
    names = [f.name for f in report.functions] + list(report.classes)
    header = "import pytest"
    if names:
        header += f"\n\nfrom {module} import {', '.join(names)}"
    parts = [header]

    for fn in report.functions:
        if not fn.cases:
            parts.append(
                f"def test_{fn.name}():\n"
                f'    pytest.skip("not implemented")'
            )
            continue
        rows = []
        for case in fn.cases:
            if case.has_expected:
                rows.append(f"    ({_kwargs_literal(case)}, {case.expected!r}),")
            else:
                rows.append(
                    f"    pytest.param({_kwargs_literal(case)}, None, marks="
                    f'pytest.mark.skip(reason="expected value not extractable")),'
                )
        parts.append(
            '@pytest.mark.parametrize("kwargs, expected", [\n'
            + "\n".join(rows) + "\n])\n"
            f"def test_{fn.name}(kwargs, expected):\n"
            f"    assert {fn.name}(**kwargs) == expected"
        )

    for cls, methods in report.classes.items():
        for method in methods:
            parts.append(
                f"def test_{cls}_{method}():\n"
                f'    pytest.skip("not implemented")'
            )
    return "\n\n\n".join(parts) + "\n"


def scan_path(path: Path) -> list[ModuleReport]:
    reports = []
    for f in sorted(path.rglob("*.py")):
        if f.name.startswith("test_") or f.name == "conftest.py":
            continue
        try:
            reports.append(analyze_source(f.read_text("utf-8"), str(f)))
        except SyntaxError as exc:
            logger.warning("skipping %s: %s", f, exc)
            continue
    return reports
