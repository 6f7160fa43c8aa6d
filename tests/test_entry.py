import io
import unittest
from unittest.mock import patch

from atlinks import entry
from atlinks.lib.errors import ServiceUnavailableError

ARGV = [
    "atlinks",
    "report",
    "-trustee",
    "jdoe",
    "-u",
    "admin@corp.local",
    "-p",
    "Passw0rd",
]


@patch("atlinks.lib.logger.init")
@patch("sys.stderr", new_callable=io.StringIO)
@patch("sys.stdout", new_callable=io.StringIO)
class TestMain(unittest.TestCase):
    def run_main(self, argv):
        with patch("sys.argv", list(argv)):
            entry.main()

    @patch("atlinks.commands.report.entry")
    def test_unreachable_service_aborts(self, report_entry, stdout, stderr, init):
        report_entry.side_effect = ServiceUnavailableError(
            "Failed to connect to administration service at '10.0.0.5'"
        )

        with self.assertLogs("atlinks", level="ERROR") as logs:
            with self.assertRaises(SystemExit) as context:
                self.run_main(ARGV)

        self.assertEqual(context.exception.code, 1)
        self.assertIn("Failed to connect to administration service", logs.output[0])
        report_entry.assert_called_once()

    @patch("atlinks.commands.report.entry")
    def test_dispatch(self, report_entry, stdout, stderr, init):
        self.run_main(ARGV)

        options = report_entry.call_args.args[0]
        self.assertEqual(options.action, "report")
        self.assertEqual(options.trustee, "jdoe")

    def test_usage_error(self, stdout, stderr, init):
        with self.assertRaises(SystemExit) as context:
            self.run_main(["atlinks", "report", "-u", "admin@corp.local"])

        self.assertEqual(context.exception.code, 2)
        self.assertIn("one of the arguments", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
