from pathlib import Path

import pytest

from reportc.compile_reports import ReportCompiler
from reportc.config import CompileReportsConfig
from reportc.context import (
    COMPILER_CLASS,
    COMPILER_CLASSPATH,
    COMPILER_KEEP_JAVA_FILE,
    COMPILER_TEMP_DIR,
    COMPILER_XML_VALIDATION,
    JAVAC_ARGUMENTS,
    EngineContext,
)
from reportc.errors import BuildFailure, InclusionScanError
from reportc.project import BuildContext, BuildProject, Resource
from reportc.scan import StaleSourceScanner
from helpers import MinimalEngine, RecordingEngine, write_at


def _setup(tmp_path, **overrides):
    cfg = CompileReportsConfig(basedir=tmp_path, **overrides)
    ctx = EngineContext({"preexisting": "yes"})
    engine = RecordingEngine(ctx)
    project = BuildProject(basedir=tmp_path, build_directory=cfg.build_directory)
    return cfg, ctx, engine, project


def test_no_stale_files_means_no_engine_calls(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    write_at(cfg.source_directory / "a.jrxml", "<a/>", offset_s=0)
    write_at(cfg.output_directory / "a.jasper", "x", offset_s=5)

    result = ReportCompiler(cfg, engine, project=project).execute()

    assert engine.calls == []
    assert result.up_to_date
    assert ctx.properties == {"preexisting": "yes"}


def test_each_stale_file_compiled_once_to_mapped_path(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    src = cfg.source_directory
    write_at(src / "a.jrxml", "<a/>", offset_s=10)
    write_at(src / "sales" / "b.jrxml", "<b/>")
    write_at(src / "sales" / "q" / "c.jrxml", "<c/>")
    write_at(src / "notes.txt", "skip")
    write_at(cfg.output_directory / "a.jasper", "old", offset_s=0)

    result = ReportCompiler(cfg, engine, project=project).execute()

    out = cfg.output_directory.resolve()
    assert sorted(d for _, d in engine.calls) == sorted([
        out / "a.jasper",
        out / "sales" / "b.jasper",
        out / "sales" / "q" / "c.jasper",
    ])
    assert len(result.compiled) == 3
    assert (out / "sales" / "q" / "c.jasper").read_bytes() == b"compiled"


def test_engine_sees_overlay_and_it_is_restored(tmp_path):
    cfg, ctx, engine, project = _setup(
        tmp_path,
        classpath_elements=["lib/a.jar"],
        additional_classpath="extra.jar",
        additional_properties={"net.sf.jasperreports.awt.ignore.missing.font": "true"},
        xml_validation=False,
        encoding="UTF-8",
    )
    write_at(cfg.source_directory / "a.jrxml", "<a/>")

    ReportCompiler(cfg, engine, project=project).execute()

    seen = engine.properties_seen[0]
    assert seen["preexisting"] == "yes"
    assert seen[COMPILER_CLASSPATH].endswith("extra.jar")
    assert seen[COMPILER_TEMP_DIR] == str(cfg.java_directory.resolve())
    assert seen[COMPILER_KEEP_JAVA_FILE] == "false"
    assert seen[COMPILER_XML_VALIDATION] == "false"
    assert seen[COMPILER_CLASS] == cfg.compiler
    assert "-encoding UTF-8" in seen[JAVAC_ARGUMENTS]
    assert seen["net.sf.jasperreports.awt.ignore.missing.font"] == "true"
    assert engine.classpaths_seen[0] == [str(Path("lib/a.jar").resolve()), str(Path("extra.jar").resolve())]
    assert engine.classpath == []
    assert ctx.properties == {"preexisting": "yes"}


def test_engine_failure_aborts_and_restores(tmp_path):
    cfg, ctx, _, project = _setup(tmp_path)
    engine = RecordingEngine(ctx, fail_on="b.jrxml")
    for name in ("a", "b", "c"):
        write_at(cfg.source_directory / f"{name}.jrxml", "<r/>")

    with pytest.raises(BuildFailure, match="Error compiling report design") as info:
        ReportCompiler(cfg, engine, project=project).execute()

    assert [s.name for s, _ in engine.calls] == ["a.jrxml", "b.jrxml"]
    assert info.value.__cause__ is not None
    assert ctx.properties == {"preexisting": "yes"}


def test_output_registered_as_resource_and_refreshed(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    build_context = BuildContext()

    ReportCompiler(cfg, engine, project=project, build_context=build_context).execute()

    assert project.resources == [Resource(directory=str(cfg.output_directory.resolve()))]
    assert build_context.refreshed == [cfg.output_directory]
    assert cfg.java_directory.is_dir()
    assert cfg.output_directory.is_dir()


def test_keep_java_adds_compile_source_root(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path, keep_java=True)
    write_at(cfg.source_directory / "a.jrxml", "<a/>")

    ReportCompiler(cfg, engine, project=project).execute()

    assert project.compile_source_roots == [str(cfg.java_directory.resolve())]
    assert engine.properties_seen[0][COMPILER_KEEP_JAVA_FILE] == "true"


def test_incremental_without_delta_returns_early(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    write_at(cfg.source_directory / "a.jrxml", "<a/>")
    build_context = BuildContext(incremental=True, changed=[tmp_path.parent / "elsewhere"])

    result = ReportCompiler(cfg, engine, project=project, build_context=build_context).execute()

    assert result.skipped
    assert engine.calls == []
    assert len(project.resources) == 1
    assert build_context.refreshed == []


def test_incremental_with_delta_compiles(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    design = write_at(cfg.source_directory / "a.jrxml", "<a/>")
    build_context = BuildContext(incremental=True, changed=[design])

    ReportCompiler(cfg, engine, project=project, build_context=build_context).execute()

    assert len(engine.calls) == 1


def test_source_directory_that_is_a_file_fails(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    write_at(cfg.source_directory, "not a dir")

    with pytest.raises(BuildFailure, match="Source directory is not a directory"):
        ReportCompiler(cfg, engine, project=project).execute()


def test_target_directory_that_is_a_file_fails(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    write_at(cfg.output_directory, "not a dir")

    with pytest.raises(BuildFailure, match="Target directory is not a directory"):
        ReportCompiler(cfg, engine, project=project).execute()


def test_file_outside_source_root_fails(tmp_path):
    cfg, ctx, engine, project = _setup(tmp_path)
    stray = write_at(tmp_path / "stray.jrxml", "<a/>")
    compiler = ReportCompiler(cfg, engine, project=project)

    with pytest.raises(BuildFailure, match="File is not in source root"):
        compiler._relative_to_root(stray)


def test_runs_without_project(tmp_path):
    cfg, ctx, engine, _ = _setup(tmp_path)
    write_at(cfg.source_directory / "a.jrxml", "<a/>")

    result = ReportCompiler(cfg, engine).execute()

    assert len(result.compiled) == 1


def test_engine_with_only_compile_method(tmp_path):
    cfg = CompileReportsConfig(basedir=tmp_path, classpath_elements=["lib/a.jar"])
    ctx = EngineContext({"preexisting": "yes"})
    engine = MinimalEngine()
    write_at(cfg.source_directory / "inv" / "a.jrxml", "<a/>")

    result = ReportCompiler(cfg, engine, context=ctx).execute()

    assert engine.calls == [
        (
            (cfg.source_directory / "inv" / "a.jrxml").resolve(),
            (cfg.output_directory / "inv" / "a.jasper").resolve(),
        )
    ]
    assert len(result.compiled) == 1
    assert ctx.properties == {"preexisting": "yes"}


def test_target_directory_that_cannot_be_created_fails(tmp_path):
    blocker = write_at(tmp_path / "blocker", "a file")
    cfg, ctx, engine, project = _setup(tmp_path, output_directory=blocker / "jasper")
    write_at(cfg.source_directory / "a.jrxml", "<a/>")

    with pytest.raises(BuildFailure, match="Target directory could not be created") as info:
        ReportCompiler(cfg, engine, project=project).execute()

    assert isinstance(info.value.__cause__, OSError)
    assert engine.calls == []
    assert ctx.properties == {"preexisting": "yes"}


def test_target_directory_not_writable_fails(tmp_path, monkeypatch):
    cfg, ctx, engine, project = _setup(tmp_path)
    write_at(cfg.source_directory / "a.jrxml", "<a/>")
    java_dir = str(cfg.java_directory)
    monkeypatch.setattr(
        "reportc.compile_reports.os.access",
        lambda path, mode: str(path) != java_dir,
    )

    with pytest.raises(BuildFailure, match="Directory for generated java sources is not writable"):
        ReportCompiler(cfg, engine, project=project).execute()

    assert engine.calls == []
    assert ctx.properties == {"preexisting": "yes"}


def test_scan_error_becomes_build_failure(tmp_path, monkeypatch):
    cfg, ctx, engine, project = _setup(tmp_path)
    write_at(cfg.source_directory / "a.jrxml", "<a/>")

    def broken_scan(self, source_dir, target_dir):
        raise InclusionScanError("Error scanning source root: 'x' for stale files to recompile.", source_dir)

    monkeypatch.setattr(StaleSourceScanner, "included_sources", broken_scan)

    with pytest.raises(BuildFailure, match="Error scanning source root") as info:
        ReportCompiler(cfg, engine, project=project).execute()

    assert isinstance(info.value.__cause__, InclusionScanError)
    assert engine.calls == []
    assert ctx.properties == {"preexisting": "yes"}


def test_destination_parent_that_cannot_be_created_fails(tmp_path, monkeypatch):
    cfg, ctx, engine, project = _setup(tmp_path)
    write_at(cfg.source_directory / "locked" / "a.jrxml", "<a/>")
    real_mkdir = Path.mkdir

    def guarded_mkdir(self, *args, **kwargs):
        if self.name == "locked":
            raise PermissionError(f"cannot create {self}")
        return real_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", guarded_mkdir)

    with pytest.raises(BuildFailure, match="Could not create directory") as info:
        ReportCompiler(cfg, engine, project=project).execute()

    assert isinstance(info.value.__cause__, PermissionError)
    assert engine.calls == []
    assert ctx.properties == {"preexisting": "yes"}
