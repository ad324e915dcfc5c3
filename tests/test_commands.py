import subprocess
import unittest
from pathlib import Path
from unittest.mock import patch

from crosstalk.errors import EditorError, ProviderError, ProviderErrorKind

from .test_base import BaseChatCLITest, FakeProvider


class TestCommands(BaseChatCLITest):
    def test_exit_command(self):
        self.assertFalse(self.chat_cli.handle_command("/exit"))

    def test_help_command(self):
        self.assertTrue(self.chat_cli.handle_command("/help"))
        self.assertIn("/clear", self.printed)
        self.assertIn("MODEL_SPEC", self.printed)

    def test_unknown_command(self):
        self.assertTrue(self.chat_cli.handle_command("/frobnicate"))
        self.assertIn("unknown command: /frobnicate", self.printed)

    def test_clear_command(self):
        self.provider.replies = [["first answer"], ["second answer"]]
        self.chat_cli.send("first question")
        self.assertEqual(len(self.chat_cli.conversation), 2)

        self.chat_cli.handle_command("/clear")
        self.assertEqual(len(self.chat_cli.conversation), 0)
        self.assertIn("[conversation cleared]", self.printed)

        self.chat_cli.send("second question")
        sent, _model = self.provider.requests[-1]
        self.assertEqual([m.content for m in sent], ["second question"])


class TestModelCommands(BaseChatCLITest):
    def setUp(self):
        super().setUp()
        self.other = FakeProvider("other", models=["big", "small"], priority=5)
        self.registry.register(self.other)

    def test_switch_model(self):
        self.chat_cli.handle_command("/model other/big")
        self.assertIs(self.chat_cli.provider, self.other)
        self.assertEqual(self.chat_cli.model, "big")
        self.assertIn("[model switched to other/big]", self.printed)

    def test_switch_keeps_conversation(self):
        self.chat_cli.send("Hello")
        self.chat_cli.handle_command("/model small")

        self.assertEqual(self.chat_cli.model, "small")
        self.chat_cli.send("Still there?")
        sent, model = self.other.requests[-1]
        self.assertEqual(model, "small")
        self.assertEqual([m.content for m in sent], ["Hello", "ok", "Still there?"])

    def test_failed_switch_keeps_current_model(self):
        for spec in ("missing/model", "no-such-model", "a/b/c"):
            with self.subTest(spec=spec):
                self.chat_cli.handle_command(f"/model {spec}")
                self.assertIs(self.chat_cli.provider, self.provider)
                self.assertEqual(self.chat_cli.model, "toy")
        self.assertIn("error:", self.printed)

    @patch("crosstalk.cli.questionary.select")
    def test_model_picker(self, mock_select):
        mock_select.return_value.ask.return_value = "other/small"

        self.chat_cli.handle_command("/model")

        choices = mock_select.call_args.kwargs["choices"]
        self.assertEqual(choices, ["other/big", "other/small", "fake/toy"])
        self.assertEqual(mock_select.call_args.kwargs["default"], "fake/toy")
        self.assertIs(self.chat_cli.provider, self.other)
        self.assertEqual(self.chat_cli.model, "small")

    @patch("crosstalk.cli.questionary.select")
    def test_model_picker_cancelled(self, mock_select):
        mock_select.return_value.ask.return_value = None

        self.chat_cli.handle_command("/model")
        self.assertEqual(self.chat_cli.model, "toy")

    @patch("crosstalk.cli.questionary.select")
    def test_model_picker_skips_failing_provider(self, mock_select):
        self.other.list_error = ProviderError("other", ProviderErrorKind.CONNECTION)
        mock_select.return_value.ask.return_value = None

        self.chat_cli.handle_command("/model")
        self.assertEqual(mock_select.call_args.kwargs["choices"], ["fake/toy"])
        self.assertIn("cannot list models of other", self.printed)

    def test_models_command(self):
        self.chat_cli.handle_command("/models")
        self.assertIn("toy", self.printed)
        self.assertNotIn("small", self.printed)


class TestEditCommand(BaseChatCLITest):
    def setUp(self):
        super().setUp()
        patcher = patch("crosstalk.cli.resolve_editor", return_value="vim")
        self.mock_resolve = patcher.start()
        self.addCleanup(patcher.stop)

    @patch("crosstalk.cli.launch_editor", return_value="composed in vim")
    def test_edit_queues_content(self, mock_launch):
        self.chat_cli.handle_command("/edit first draft")

        mock_launch.assert_called_once_with("vim", "first draft")
        self.assertEqual(self.chat_cli.pending, "composed in vim")
        self.assertIn("composed in vim", self.printed)

    @patch("crosstalk.cli.launch_editor", side_effect=EditorError("the editor exited with status 1"))
    def test_failed_editor_queues_nothing(self, _mock_launch):
        self.chat_cli.handle_command("/edit")

        self.assertIsNone(self.chat_cli.pending)
        self.assertIn("no message was queued", self.printed)

    @patch("crosstalk.cli.launch_editor", return_value=None)
    def test_empty_edit_queues_nothing(self, _mock_launch):
        self.chat_cli.handle_command("/edit")

        self.assertIsNone(self.chat_cli.pending)
        self.assertIn("[empty message, nothing queued]", self.printed)

    def test_undecodable_editor_output_queues_nothing(self):
        def run(argv, check):
            Path(argv[-1]).write_bytes(b"\xff\xfe hi")
            return subprocess.CompletedProcess(argv, 0)

        with patch("crosstalk.editor.subprocess.run", side_effect=run):
            self.assertTrue(self.chat_cli.handle_command("/edit"))

        self.assertIsNone(self.chat_cli.pending)
        self.assertIn("no message was queued", self.printed)

    def test_configured_editor_is_used(self):
        self.chat_cli.editor = "code --wait"
        with patch("crosstalk.cli.launch_editor", return_value=None):
            self.chat_cli.handle_command("/edit")
        self.mock_resolve.assert_called_once_with("code --wait")


if __name__ == "__main__":
    unittest.main()
