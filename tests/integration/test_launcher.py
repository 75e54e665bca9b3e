"""End-to-end launcher runs with a fake compositor and spawner"""

from __future__ import annotations

from xwayback.cli import launcher_run


def error_lines(stream) -> list[str]:
    return [line for line in stream.getvalue().splitlines() if line.startswith("[ERROR]")]


class TestSuccessfulSession:
    def test_full_startup(self, executables, fake_spawner_class, fake_output_class, log_stream):
        spawner = fake_spawner_class([fake_output_class(width=1920, height=1080)])
        environ = {**executables, "WAYLAND_DISPLAY": "wayland-0"}

        status = launcher_run(
            ["Xwayback", ":1", "-rootless", "-depth", "24", "-ac"],
            environ=environ,
            stream=log_stream,
            process_spawn=spawner,
        )
        spawner.compositor.join()

        assert status == 0
        assert len(spawner.calls) == 2
        compositor_call, xwayland_call = spawner.calls
        assert "WAYLAND_DISPLAY" not in compositor_call["env"]
        assert "WAYLAND_DISPLAY" not in xwayland_call["env"]
        argv = xwayland_call["argv"]
        assert argv[:5] == [executables["XWAYLAND_PATH"], "-terminate", "3", "-geometry", "1920x1080"]
        assert argv[-2:] == [":1", "-ac"]
        assert "-rootless" not in argv
        assert "24" not in argv
        assert error_lines(log_stream) == []

    def test_verbose_is_mirrored(self, executables, fake_spawner_class, fake_output_class, log_stream):
        spawner = fake_spawner_class([fake_output_class()])
        launcher_run(
            ["Xwayback", "-verbose", "7", ":2"],
            environ=executables,
            stream=log_stream,
            process_spawn=spawner,
        )
        spawner.compositor.join()

        argv = spawner.calls[1]["argv"]
        index = argv.index("-verbose")
        assert argv[index + 1] == "7"
        assert argv[-1] == ":2"
        assert "[DEBUG]" in log_stream.getvalue()

    def test_compositor_status_is_exit_code(
        self, executables, fake_spawner_class, fake_output_class, log_stream
    ):
        spawner = fake_spawner_class([fake_output_class()], compositor_status=-15)
        status = launcher_run(
            ["Xwayback", ":1"], environ=executables, stream=log_stream, process_spawn=spawner
        )
        spawner.compositor.join()
        assert status == 143


class TestFatalStartup:
    def test_zero_outputs(self, executables, fake_spawner_class, log_stream):
        spawner = fake_spawner_class([])
        status = launcher_run(
            ["Xwayback", ":1"], environ=executables, stream=log_stream, process_spawn=spawner
        )
        spawner.compositor.join()

        assert status == 1
        assert len(spawner.calls) == 1
        assert error_lines(log_stream) == ["[ERROR] (Xwayback): Unable to get outputs"]

    def test_missing_executable(self, executables, fake_spawner_class, tmp_path, log_stream):
        spawner = fake_spawner_class([])
        environ = {**executables, "XWAYLAND_PATH": str(tmp_path / "nope")}
        status = launcher_run(
            ["Xwayback", ":1"], environ=environ, stream=log_stream, process_spawn=spawner
        )

        assert status == 1
        assert spawner.calls == []
        assert len(error_lines(log_stream)) == 1

    def test_bad_verbosity_before_spawn(self, executables, fake_spawner_class, log_stream):
        spawner = fake_spawner_class([])
        status = launcher_run(
            ["Xwayback", "-verbose", "21"], environ=executables, stream=log_stream, process_spawn=spawner
        )

        assert status == 1
        assert spawner.calls == []
        assert "between 0 and 20" in log_stream.getvalue()


class TestShortCircuit:
    def test_help(self, fake_spawner_class, log_stream):
        spawner = fake_spawner_class([])
        status = launcher_run(
            ["Xwayback", "-help", "-verbose", "99"], environ={}, stream=log_stream, process_spawn=spawner
        )

        assert status == 0
        assert spawner.calls == []
        assert "Usage: Xwayback [:<display>] [option]" in log_stream.getvalue()

    def test_showconfig(self, fake_spawner_class, log_stream):
        spawner = fake_spawner_class([])
        status = launcher_run(
            ["Xwayback", "-showconfig"], environ={}, stream=log_stream, process_spawn=spawner
        )

        assert status == 0
        assert spawner.calls == []
        assert "Version " in log_stream.getvalue()

    def test_help_after_invalid_verbose(self, fake_spawner_class, log_stream):
        spawner = fake_spawner_class([])
        status = launcher_run(
            ["Xwayback", "-verbose", "99", "-help"], environ={}, stream=log_stream, process_spawn=spawner
        )

        assert status == 0
        assert spawner.calls == []
        assert "[ERROR]" not in log_stream.getvalue()
        assert "Usage: Xwayback [:<display>] [option]" in log_stream.getvalue()
