"""
Tests for the fail-fast pipeline, step outcomes and the run report.
"""

from wslsetup.core.engine.pipeline import (
    PipelineReport,
    Step,
    StepContext,
    StepOutcome,
    generate_operation_id,
    run_pipeline,
    run_step,
)
from wslsetup.core.models.action import Receipt


class FakeStep(Step):
    """Scriptable step that records what was called."""

    def __init__(self, name, present=False, install_code=None, configure_code=None, raises=None):
        self._name = name
        self._present = present
        self._install_code = install_code
        self._configure_code = configure_code
        self._raises = raises
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def is_present(self, ctx) -> bool:
        self.calls.append("is_present")
        return self._present

    def _receipt(self, phase, code) -> Receipt:
        if code:
            return Receipt.failure(
                adapter="fake",
                action_id=f"{self._name}:{phase}",
                error=f"{phase} failed",
                metadata={"return_code": code},
            )
        return Receipt.success(adapter="fake", action_id=f"{self._name}:{phase}")

    def install(self, ctx) -> Receipt:
        self.calls.append("install")
        if self._raises == "install":
            raise RuntimeError("installer crashed")
        return self._receipt("install", self._install_code)

    def configure(self, ctx) -> Receipt:
        self.calls.append("configure")
        if self._raises == "configure":
            raise OSError("disk full")
        return self._receipt("configure", self._configure_code)


# ── run_step ─────────────────────────────────────────────────────────


class TestRunStep:
    def test_present_tool_skips_install(self, step_ctx: StepContext):
        step = FakeStep("gh", present=True)
        outcome = run_step(step, step_ctx)
        assert step.calls == ["is_present", "configure"]
        assert outcome.status == "present"

    def test_absent_tool_installs_then_configures(self, step_ctx: StepContext):
        step = FakeStep("gh")
        outcome = run_step(step, step_ctx)
        assert step.calls == ["is_present", "install", "configure"]
        assert outcome.status == "installed"

    def test_failed_install_skips_configure(self, step_ctx: StepContext):
        step = FakeStep("gh", install_code=100)
        outcome = run_step(step, step_ctx)
        assert "configure" not in step.calls
        assert outcome.failed
        assert outcome.failure.return_code == 100

    def test_exception_becomes_failed_receipt(self, step_ctx: StepContext):
        outcome = run_step(FakeStep("gh", raises="configure"), step_ctx)
        assert outcome.failed
        assert "OSError: disk full" in outcome.failure.error
        assert outcome.failure.metadata["phase"] == "configure"

    def test_skipped_install_is_not_a_failure(self, step_ctx: StepContext):
        class NoInstaller(FakeStep):
            def install(self, ctx):
                return Receipt.skip(adapter="step", action_id="x", reason="curl not available")

        outcome = run_step(NoInstaller("starship"), step_ctx)
        assert not outcome.failed
        assert outcome.status == "skipped"
        assert outcome.configure is not None


# ── run_pipeline ─────────────────────────────────────────────────────


class TestRunPipeline:
    def test_all_ok(self, step_ctx: StepContext):
        report = run_pipeline([FakeStep("a"), FakeStep("b", present=True)], step_ctx)
        assert report.all_ok
        assert report.exit_code == 0
        assert report.succeeded == 2

    def test_halts_at_first_failure(self, step_ctx: StepContext):
        later = FakeStep("c")
        report = run_pipeline([FakeStep("a"), FakeStep("b", install_code=2), later], step_ctx)

        assert report.halted_at == "b"
        assert later.calls == []
        assert [o.status for o in report.outcomes] == ["installed", "failed", "not_run"]
        assert report.not_run == 1
        assert report.exit_code == 2

    def test_exit_code_falls_back_to_one(self, step_ctx: StepContext):
        report = run_pipeline([FakeStep("a", raises="install")], step_ctx)
        assert report.exit_code == 1

    def test_exit_code_out_of_range(self, step_ctx: StepContext):
        report = run_pipeline([FakeStep("a", install_code=300)], step_ctx)
        assert report.exit_code == 1

    def test_callbacks(self, step_ctx: StepContext):
        seen_before: list[str] = []
        seen_after: list[str] = []
        run_pipeline(
            [FakeStep("a"), FakeStep("b", install_code=1), FakeStep("c")],
            step_ctx,
            on_step=lambda o: seen_after.append(f"{o.name}:{o.status}"),
            before_step=lambda s: seen_before.append(s.name),
        )
        assert seen_before == ["a", "b"]
        assert seen_after == ["a:installed", "b:failed", "c:not_run"]

    def test_to_dict(self, step_ctx: StepContext):
        report = run_pipeline([FakeStep("a")], step_ctx)
        data = report.to_dict()
        assert data["status"] == "ok"
        assert data["steps"][0]["name"] == "a"
        assert data["steps"][0]["install"]["status"] == "ok"


class TestReportModel:
    def test_empty_report(self):
        report = PipelineReport()
        assert report.all_ok
        assert report.total == 0
        assert report.failure is None

    def test_planned_status(self):
        outcome = StepOutcome(
            name="gh",
            install=Receipt.skip(adapter="step", action_id="x", metadata={"dry_run": True}),
        )
        assert outcome.status == "planned"

    def test_operation_id_format(self):
        assert generate_operation_id().startswith("op-")
        assert generate_operation_id() != generate_operation_id()


# ── Context ──────────────────────────────────────────────────────────


class TestStepContext:
    def test_expand_placeholders(self, step_ctx: StepContext, home):
        assert step_ctx.expand("{workdir}") == home / "repos"
        assert step_ctx.expand("{nvm_dir}/nvm.sh") == home / ".nvm" / "nvm.sh"
        assert step_ctx.expand("~/x") == home / "x"

    def test_env_pins_home(self, step_ctx: StepContext, home):
        assert step_ctx.env["HOME"] == str(home)
        assert step_ctx.env["NVM_DIR"] == str(home / ".nvm")

    def test_run_goes_through_registry(self, step_ctx: StepContext, mock_shell):
        receipt = step_ctx.run("gh", "gh --version", capture=True)
        assert receipt.ok
        assert mock_shell.commands == ["gh --version"]
        assert "nvm.sh" in mock_shell.call_log[0].params["preamble"]

    def test_which_finds_path_executables(self, step_ctx: StepContext):
        assert step_ctx.command_exists("sh")
        assert not step_ctx.command_exists("definitely-not-a-real-tool-xyz")
