from __future__ import annotations

from unittest.mock import patch

import pytest

from rocketgraph_installer.lib.command import CmdResult
from rocketgraph_installer.lib.envfile import ConfigDocument
from rocketgraph_installer.lib.reconcile import ReconcileResult
from rocketgraph_installer.lib.runtime import DockerRuntime, PodmanRuntime
from rocketgraph_installer.steps import PreparePlatformStep, SessionLingerStep, SummaryStep
from rocketgraph_installer.steps.step_80_extract_artifacts import image_matches


def _with(ctx, text, *, arch="amd64", profile_cls=DockerRuntime, **profile_kw):
    engine = profile_cls.kind
    ctx.profile = profile_cls(
        engine_name=engine, compose_invocation=(engine, "compose"), architecture=arch, **profile_kw
    )
    ctx.reconciled = ReconcileResult(document=ConfigDocument.parse(text), fresh=True)
    return ctx


class TestSummary:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("MC_PORT=80\n", ["http://localhost"]),
            ("MC_PORT=8080\n", ["http://localhost:8080"]),
            (
                "MC_PORT=80\nMC_SSL_PORT=8443\nMC_SSL_PUBLIC_CERT=/c\nMC_SSL_PRIVATE_KEY=/k\n",
                ["http://localhost", "https://localhost:8443"],
            ),
            # Only one half of the certificate pair: no HTTPS endpoint.
            ("MC_PORT=80\nMC_SSL_PORT=443\nMC_SSL_PUBLIC_CERT=/c\n#MC_SSL_PRIVATE_KEY=/k\n", ["http://localhost"]),
        ],
    )
    def test_urls(self, make_ctx, text, expected):
        ctx = _with(make_ctx(), text)
        assert SummaryStep().urls(ctx) == expected


class TestPreparePlatform:
    def test_not_applicable_on_x86(self, make_ctx):
        assert not PreparePlatformStep().applies(_with(make_ctx(), "", arch="amd64"))
        assert PreparePlatformStep().applies(_with(make_ctx(), "", arch="arm64"))

    def test_creates_missing_volume_then_fixes_ownership(self, make_ctx):
        calls = []
        inspections = iter(["", "/var/lib/docker/volumes/v/_data\n"])

        def runner(argv, *, timeout=None, cwd=None, env=None):
            calls.append(list(argv))
            if "inspect" in argv:
                out = next(inspections)
                return CmdResult(argv=list(argv), returncode=0 if out else 1, output=out or "no such volume")
            return CmdResult(argv=list(argv), returncode=0, output="")

        ctx = _with(make_ctx(), "", arch="arm64")
        ctx.runner = runner
        PreparePlatformStep().run(ctx)

        assert ["docker", "volume", "create", "rocketgraph_mongodb-data"] in calls
        assert calls[-1] == ["chown", "-R", "999:999", "/var/lib/docker/volumes/v/_data"]
        assert ctx.advisories == []

    def test_chown_failure_is_advisory(self, make_ctx, runner):
        runner.on("volume", "inspect", output="/mnt/v\n").on("chown", returncode=1, output="Operation not permitted")
        ctx = _with(make_ctx(), "", arch="arm64")
        PreparePlatformStep().run(ctx)
        assert len(ctx.advisories) == 1
        assert "chown -R 999:999 /mnt/v" in ctx.advisories[0].message


class TestSessionLinger:
    def test_only_rootless_podman(self, make_ctx):
        step = SessionLingerStep()
        assert not step.applies(_with(make_ctx(), ""))
        assert not step.applies(_with(make_ctx(), "", profile_cls=PodmanRuntime, rootless=False))
        assert step.applies(_with(make_ctx(), "", profile_cls=PodmanRuntime, rootless=True))

    def test_unknown_user_is_advisory(self, make_ctx, runner):
        ctx = _with(make_ctx(), "", profile_cls=PodmanRuntime, rootless=True)
        with patch("getpass.getuser", side_effect=OSError("No username set in the environment")):
            SessionLingerStep().run(ctx)
        assert [a.source for a in ctx.advisories] == ["linger"]
        assert "No username set" in ctx.advisories[0].message
        assert not runner.ran("loginctl")

    def test_enables_linger_for_current_user(self, make_ctx, runner):
        ctx = _with(make_ctx(), "", profile_cls=PodmanRuntime, rootless=True)
        with patch("getpass.getuser", return_value="rg"):
            SessionLingerStep().run(ctx)
        assert runner.calls == [["loginctl", "enable-linger", "rg"]]
        assert ctx.advisories == []


class TestImageMatch:
    @pytest.mark.parametrize(
        "image",
        [
            "rocketgraph/xgt",
            "rocketgraph/xgt:2.3.1",
            "docker.io/rocketgraph/xgt:latest",
            "localhost:5000/rocketgraph/xgt",
            "rocketgraph/xgt@sha256:abcd",
        ],
    )
    def test_matches(self, image):
        assert image_matches(image, "rocketgraph/xgt")

    @pytest.mark.parametrize("image", ["mongo:4.4", "rocketgraph/mc", "other/xgt"])
    def test_does_not_match(self, image):
        assert not image_matches(image, "rocketgraph/xgt")
