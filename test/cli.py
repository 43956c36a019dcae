"""
Cli behavioral tests (registration, parse orchestration, help, faults, exit).

Scope
- Validate invocation and argument binding through the public Cli API.
- Validate help/menu behavior, failure reports and command-not-found reports.
- Validate inheritance of parent named options and environment precedence.
- Validate that repeated parses never share argument state.

Conventions
- Test method names follow CamelCase per project convention.
- Consoles write to string buffers; the process environment is only touched under mock.patch.dict.
"""

from __future__ import annotations

import io
import os
import unittest
from unittest import IsolatedAsyncioTestCase, TestCase, mock

from rich.console import Console

from argtree import (
    ArgumentParseError,
    Cli,
    CommandNotFoundError,
    InvalidCommandTextError,
    ParseOptions,
    ParseStatus,
    RequiredArgumentError,
    UnexpectedPositionalError,
    UnknownTokenError,
)


def make_cli(**options):
    return Cli(
        "tool",
        console=Console(file=io.StringIO(), color_system=None, width=120),
        error_console=Console(file=io.StringIO(), color_system=None, width=120),
        **options,
    )


def output(console):
    return console.file.getvalue()


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, args):
        self.calls.append(dict(args))


class TestInvocation(IsolatedAsyncioTestCase):

    async def testActionReceivesBoundArguments(self):
        cli = make_cli()
        build = Recorder()
        cli.on("build", build, {
            "target": {"kind": "positional"},
            "threads": {"aliases": ["t"], "parse": int, "default": 1},
        })
        result = await cli.parse(["build", "docs", "-t", "3"])
        self.assertIs(result.status, ParseStatus.INVOKED)
        self.assertEqual(build.calls[0]["target"], "docs")
        self.assertEqual(build.calls[0]["threads"], 3)
        self.assertIsNone(result.exit_code)

    async def testLongestRegisteredPathIsInvoked(self):
        cli = make_cli()
        called = []
        cli.default(lambda args: called.append(""))
        cli.on("do", lambda args: called.append("do"))
        cli.on("do something", lambda args: called.append("do something"))
        cli.on("do something regular", lambda args: called.append(args["t"]), {"t": {}})
        result = await cli.parse("do something regular -t x")
        self.assertEqual(result.path, "do something regular")
        self.assertEqual(called, ["x"])

    async def testAsyncActionAndTransformAreAwaited(self):
        cli = make_cli()
        seen = []

        async def parse_port(value):
            return int(value)

        async def serve(args):
            seen.append(args["port"])

        cli.on("serve", serve, {"port": {"parse": parse_port}})
        await cli.parse(["serve", "--port", "9000"])
        self.assertEqual(seen, [9000])

    async def testInvokeDisabled(self):
        cli = make_cli()
        build = Recorder()
        cli.on("build", build)
        result = await cli.parse(["build"], invoke=False)
        self.assertIs(result.status, ParseStatus.PARSED)
        self.assertEqual(build.calls, [])

    async def testActionErrorsPropagate(self):
        cli = make_cli()

        def explode(args):
            raise RuntimeError("boom")

        cli.on("explode", explode)
        with self.assertRaises(RuntimeError):
            await cli.parse(["explode"])

    async def testValuesWrittenBackToOwnerObject(self):
        class Options:
            def __init__(self):
                self.port = 8080
                setattr(self, "__$port", {"parse": int})

        cli = make_cli()
        options = Options()
        cli.on("serve", lambda args: None, options)
        await cli.parse(["serve", "--port", "9000"])
        self.assertEqual(options.port, 9000)

    async def testHooksFireInOrder(self):
        cli = make_cli()
        events = []
        cli.hook("pre_parse", lambda argv: events.append("pre_parse"))
        cli.hook("parsed", lambda path, args: events.append("parsed"))
        cli.hook("invoke", lambda path, args: events.append("invoke"))
        cli.on("build", lambda args: events.append("action"))
        await cli.parse(["build"])
        self.assertEqual(events, ["pre_parse", "parsed", "invoke", "action"])

    async def testCommandHandleRegistersChildren(self):
        cli = make_cli()
        added = Recorder()
        remote = cli.command("remote", options={"description": "manage remotes"})
        remote.command("add", {"name": {"kind": "positional"}}).on(added)
        await cli.parse(["remote", "add", "origin"])
        self.assertEqual(added.calls[0]["name"], "origin")


class TestFailures(IsolatedAsyncioTestCase):

    async def testMissingRequiredPositional(self):
        cli = make_cli()
        copy = Recorder()
        cli.on("copy", copy, {"source": {"kind": "positional"}, "target": {"kind": "positional"}})
        result = await cli.parse(["copy", "a"])
        self.assertIs(result.status, ParseStatus.FAILED)
        self.assertEqual(result.exit_code, 2)
        self.assertEqual(copy.calls, [])
        (fault,) = result.faults.exceptions
        self.assertIsInstance(fault, RequiredArgumentError)
        self.assertEqual(fault.options["argument"].field_name, "target")
        self.assertIn("<target>", output(cli.error_console))

    async def testParseErrorReported(self):
        cli = make_cli()
        cli.on("work", lambda args: None, {"threads": {"parse": int}})
        result = await cli.parse(["work", "--threads", "many"])
        self.assertIs(result.status, ParseStatus.FAILED)
        (fault,) = result.faults.exceptions
        self.assertIsInstance(fault, ArgumentParseError)
        self.assertIsInstance(fault.options["exception"], ValueError)

    async def testUnknownFlagIsFatalOnlyWhenStrict(self):
        cli = make_cli()
        work = Recorder()
        cli.on("work", work)

        result = await cli.parse(["work", "--bogus"])
        self.assertIs(result.status, ParseStatus.FAILED)
        self.assertIsInstance(result.faults.exceptions[0], UnknownTokenError)

        result = await cli.parse(["work", "--bogus"], strict=False)
        self.assertIs(result.status, ParseStatus.INVOKED)
        self.assertEqual(result.unknown_names, ["bogus"])

    async def testOverflowWithoutSink(self):
        cli = make_cli()
        run = Recorder()
        cli.on("run", run)

        result = await cli.parse(["run", "extra"])
        self.assertIs(result.status, ParseStatus.FAILED)
        self.assertIsInstance(result.faults.exceptions[0], UnexpectedPositionalError)

        result = await cli.parse(["run", "extra"], strict=False)
        self.assertIs(result.status, ParseStatus.INVOKED)
        self.assertEqual(result.overflow, ["extra"])
        self.assertNotIn("extra", run.calls[0].values())

    async def testExitCodeCanBeDisabled(self):
        cli = make_cli(parse_options=ParseOptions(exit_code_on_error=-1, show_errors=False))
        cli.on("copy", lambda args: None, {"source": {"kind": "positional"}})
        result = await cli.parse(["copy"])
        self.assertIs(result.status, ParseStatus.FAILED)
        self.assertIsNone(result.exit_code)
        self.assertEqual(output(cli.error_console), "")

    async def testCommandNotFoundSuggests(self):
        cli = make_cli()
        for path in ("init", "info", "run"):
            cli.on(path, lambda args: None)
        result = await cli.parse(["int"])
        self.assertIs(result.status, ParseStatus.NOT_FOUND)
        self.assertEqual(result.exit_code, 2)
        self.assertIsInstance(result.faults, CommandNotFoundError)
        self.assertEqual(result.faults.options["hint"], "did you mean: init, info, run")
        self.assertIn("did you mean: init, info, run", output(cli.error_console))

    async def testCommandNotFoundIgnoresFlags(self):
        cli = make_cli()
        for path in ("init", "info", "run"):
            cli.on(path, lambda args: None)
        result = await cli.parse(["--verbose", "int"])
        self.assertIs(result.status, ParseStatus.NOT_FOUND)
        self.assertEqual(str(result.faults), "command 'int' not found")
        self.assertEqual(result.faults.options["hint"], "did you mean: init, info, run")

    async def testCommandNotFoundCanRaise(self):
        cli = make_cli()
        cli.on("init", lambda args: None)
        with self.assertRaises(CommandNotFoundError):
            await cli.parse(["int"], throw_command_not_found_error=True, show_errors=False)

    def testInvalidPathRejectedAtRegistration(self):
        with self.assertRaises(InvalidCommandTextError):
            make_cli().on("deploy/now", lambda args: None)


class TestHelp(IsolatedAsyncioTestCase):

    async def testHelpFlagShowsHelpInsteadOfInvoking(self):
        cli = make_cli()
        build = Recorder()
        cli.on("build", build, {"target": {"kind": "positional", "description": "what to build"}},
               {"description": "build a target"})
        result = await cli.parse(["build", "--help"])
        self.assertIs(result.status, ParseStatus.HELP)
        self.assertEqual(build.calls, [])
        text = output(cli.console)
        self.assertIn("Usage", text)
        self.assertIn("<target>", text)
        self.assertIn("build a target", text)
        self.assertEqual(output(cli.error_console), "")

    async def testMenuCommandShowsSubCommands(self):
        cli = make_cli()
        cli.set("remote", options={"description": "manage remotes"})
        cli.on("remote add", lambda args: None, options={"description": "add a remote"})
        result = await cli.parse(["remote"])
        self.assertIs(result.status, ParseStatus.HELP)
        self.assertIn("add a remote", output(cli.console))

        result = await cli.parse(["remote"], show_help_on_menu=False)
        self.assertIs(result.status, ParseStatus.PARSED)

    def testHelpTextHidesInheritedOptionsUnlessAskedForAll(self):
        cli = make_cli()
        cli.set("", {"profile": {}})
        cli.on("deploy", lambda args: None, {"region": {"description": "target region"}})
        text = cli.get_help_text("deploy")
        self.assertIn("--region", text)
        self.assertIn("target region", text)
        self.assertNotIn("--profile", text)
        self.assertIn("--profile", cli.get_help_text("deploy", show_all=True))

    def testHelpTextListsEnvironmentVariables(self):
        cli = make_cli()
        cli.on("deploy", lambda args: None, {"token": {"env": "ARGTREE_TEST_DEPLOY_TOKEN"}})
        self.assertIn("ARGTREE_TEST_DEPLOY_TOKEN", cli.get_help_text("deploy"))


class TestInheritanceAndEnvironment(IsolatedAsyncioTestCase):

    async def testParentNamedOptionsAreInherited(self):
        cli = make_cli()
        deploy = Recorder()
        cli.set("", {
            "profile": {"aliases": ["p"]},
            "verbose": {"kind": "flag"},
            "config": {"kind": "positional", "require": False},
        })
        cli.on("deploy", deploy)
        result = await cli.parse(["deploy", "-p", "dev"])
        self.assertIs(result.status, ParseStatus.INVOKED)
        self.assertEqual(deploy.calls[0]["profile"], "dev")
        self.assertNotIn("verbose", deploy.calls[0])
        self.assertNotIn("config", deploy.calls[0])

    async def testParentFlagsAreNotInherited(self):
        cli = make_cli()
        cli.set("", {"verbose": {"kind": "flag", "aliases": ["v"]}})
        cli.on("deploy", lambda args: None)
        result = await cli.parse(["deploy", "-v"])
        self.assertIs(result.status, ParseStatus.FAILED)
        self.assertIsInstance(result.faults.exceptions[0], UnknownTokenError)

    async def testInheritanceCanBeDisabled(self):
        cli = make_cli()
        cli.set("", {"profile": {"aliases": ["p"]}})
        cli.on("deploy", lambda args: None, options={"inherit_parent_named_options": False})
        result = await cli.parse(["deploy", "-p", "dev"])
        self.assertIs(result.status, ParseStatus.FAILED)

    async def testInheritanceStopsAtFirstNonInheritingAncestor(self):
        cli = make_cli()
        cli.set("", {"root_option": {}})
        cli.set("a", {"a_option": {}}, {"inherit_parent_named_options": False})
        cli.on("a b", lambda args: None)
        self.assertIs((await cli.parse(["a", "b", "--a-option", "x"])).status, ParseStatus.INVOKED)
        self.assertIs((await cli.parse(["a", "b", "--root-option", "x"])).status, ParseStatus.FAILED)

    async def testEnvironmentPrecedenceAndMirroring(self):
        with mock.patch.dict(os.environ, {"ARGTREE_TEST_WORKERS": "8"}):
            cli = make_cli()
            work = Recorder()
            cli.on("work", work, {"workers": {"env": "ARGTREE_TEST_WORKERS", "parse": int, "default": 1}})
            await cli.parse(["work"])
            self.assertEqual(work.calls[-1]["workers"], 8)
            await cli.parse(["work", "--workers", "2"])
            self.assertEqual(work.calls[-1]["workers"], 2)
            self.assertEqual(os.environ["ARGTREE_TEST_WORKERS"], "2")

    async def testRepeatedParsesDoNotShareState(self):
        cli = make_cli()
        tag = Recorder()
        cli.on("tag", tag, {"labels": {"collect_multiple": True, "aliases": ["l"]}})
        await cli.parse(["tag", "-l", "a", "-l", "b"])
        await cli.parse(["tag"])
        self.assertEqual(tag.calls[0]["labels"], ["a", "b"])
        self.assertIsNone(tag.calls[1]["labels"])
        self.assertIsNone(cli.get("tag").arguments[0].value)

    async def testDefaultMirroredToEnvironmentIsNotReadBack(self):
        with mock.patch.dict(os.environ, {}):
            cli = make_cli()
            work = Recorder()
            cli.on("work", work, {"workers": {"env": "ARGTREE_TEST_POOL", "default": 3}})
            await cli.parse(["work"])
            await cli.parse(["work"])
            self.assertEqual([call["workers"] for call in work.calls], [3, 3])
            self.assertEqual(os.environ["ARGTREE_TEST_POOL"], "3")

    async def testOtherCommandsRequiredEnvironmentArguments(self):
        with mock.patch.dict(os.environ, {}):
            os.environ.pop("ARGTREE_TEST_DEPLOY_KEY", None)
            cli = make_cli()
            status = Recorder()
            cli.on("deploy", lambda args: None, {"key": {"kind": "env", "env": "ARGTREE_TEST_DEPLOY_KEY", "require": True}})
            cli.on("status", status)

            result = await cli.parse(["status"])
            self.assertIs(result.status, ParseStatus.FAILED)
            self.assertEqual(status.calls, [])
            (fault,) = result.faults.exceptions
            self.assertIsInstance(fault, RequiredArgumentError)
            self.assertEqual(fault.options["argument"].field_name, "key")

            os.environ["ARGTREE_TEST_DEPLOY_KEY"] = "secret"
            self.assertIs((await cli.parse(["status"])).status, ParseStatus.INVOKED)

    async def testOtherCommandsEnvironmentParseErrors(self):
        with mock.patch.dict(os.environ, {"ARGTREE_TEST_RETRIES": "often"}):
            cli = make_cli()
            cli.on("sync", lambda args: None, {"retries": {"env": "ARGTREE_TEST_RETRIES", "parse": int}})
            cli.on("status", lambda args: None)
            result = await cli.parse(["status"])
            self.assertIs(result.status, ParseStatus.FAILED)
            (fault,) = result.faults.exceptions
            self.assertIsInstance(fault, ArgumentParseError)
            self.assertEqual(fault.options["argument"].field_name, "retries")


class TestCollections(IsolatedAsyncioTestCase):

    async def testOverflowTokensAreParsedOneByOne(self):
        cli = make_cli()
        total = Recorder()
        cli.on("sum", total, {"numbers": {"kind": "overflow", "parse": int, "default": [0]}})
        result = await cli.parse(["sum", "1", "2"])
        self.assertIs(result.status, ParseStatus.INVOKED)
        self.assertEqual(total.calls[0]["numbers"], [1, 2])

        result = await cli.parse(["sum"])
        self.assertEqual(total.calls[1]["numbers"], [0])

    async def testOverflowParseErrorReported(self):
        cli = make_cli()
        total = Recorder()
        cli.on("sum", total, {"numbers": {"kind": "overflow", "parse": int}})
        result = await cli.parse(["sum", "x", "2"])
        self.assertIs(result.status, ParseStatus.FAILED)
        self.assertEqual(total.calls, [])
        (fault,) = result.faults.exceptions
        self.assertIsInstance(fault, ArgumentParseError)
        self.assertEqual(fault.options["argument"].field_name, "numbers")

    async def testTransferTokensAreParsedOneByOne(self):
        cli = make_cli()
        run = Recorder()
        cli.on("run", run, {"argv": {"kind": "transfer", "parse": str.upper}})
        await cli.parse(["run", "--", "-a", "b"])
        self.assertEqual(run.calls[0]["argv"], ["-A", "B"])


class TestRun(TestCase):

    def testRunExitsWithErrorCode(self):
        cli = make_cli()
        cli.on("init", lambda args: None)
        with self.assertRaises(SystemExit) as context:
            cli.run(["int"])
        self.assertEqual(context.exception.code, 2)

    def testRunReturnsResultOnSuccess(self):
        cli = make_cli()
        cli.on("init", lambda args: None)
        self.assertIs(cli.run(["init"]).status, ParseStatus.INVOKED)


if __name__ == "__main__":
    unittest.main()
