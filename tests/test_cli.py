from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
import io
import json
from pathlib import Path
import tempfile
import unittest

from parasurf.cli import _attach_formula_values, build_parser, main


class CliTests(unittest.TestCase):
    def _run(self, *argv: str) -> tuple[int, str, str]:
        out = io.StringIO()
        err = io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_defaults_match_flat_plane(self) -> None:
        args = build_parser().parse_args([])
        self.assertEqual((args.x, args.y, args.z), ("2*u-1", "0", "2*v-1"))
        self.assertEqual((args.r, args.g, args.b), ("1", "1", "1"))
        self.assertEqual((args.res_u, args.res_v), (64, 64))
        self.assertEqual(args.auxiliaries, [])

    def test_auxiliaries_keep_command_line_order(self) -> None:
        args = build_parser().parse_args(["-e", "U=2*pi*u", "-x", "U", "-e", "V=pi*v"])
        self.assertEqual(args.auxiliaries, ["U=2*pi*u", "V=pi*v"])

    def test_summary_without_output(self) -> None:
        code, out, _ = self._run("-u", "4", "-v", "3", "--backend", "interpreter")
        self.assertEqual(code, 0)
        self.assertIn("12 vertices (4x3), 18 strip indices", out)

    def test_writes_json_mesh(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "mesh" / "sphere.json"
            code, _, _ = self._run(
                "-e", "U=2*pi*u",
                "-e", "V=pi*v",
                "-x", "cos(U) * sin(V)",
                "-y", "cos(V)",
                "-z", "sin(U) * sin(V)",
                "-u", "6",
                "-v", "5",
                "--backend", "interpreter",
                "-o", str(path),
            )
            self.assertEqual(code, 0)
            payload = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual((payload["res_u"], payload["res_v"]), (6, 5))
        self.assertEqual(len(payload["positions"]), 30)
        self.assertEqual(len(payload["indices"]), 4 * 2 * 6 + 3 * 2)

    def test_parse_error_exit_code_and_message(self) -> None:
        code, _, err = self._run("-x", "1+", "--backend", "interpreter")
        self.assertEqual(code, 1)
        self.assertIn("PARSE ERROR: at position 2: number or parenthesis expected", err)

    def test_surface_errors_exit_with_two(self) -> None:
        code, _, err = self._run("-u", "1", "--backend", "interpreter")
        self.assertEqual(code, 2)
        self.assertIn("ERROR:", err)

        code, _, _ = self._run("-e", "no_equals_sign", "--backend", "interpreter")
        self.assertEqual(code, 2)

    def test_disassemble_prints_programs(self) -> None:
        code, out, _ = self._run("-e", "W=u+v", "-u", "2", "-v", "2", "--backend", "interpreter", "--disassemble")
        self.assertEqual(code, 0)
        self.assertIn("W = u+v", out)
        self.assertIn("load 0 (u)", out)
        self.assertIn("x = 2*u-1", out)

    def test_formula_may_start_with_minus(self) -> None:
        code, out, err = self._run(
            "-y", "-cos(v)",
            "-x", "-u*2",
            "-u", "2",
            "-v", "2",
            "--backend", "interpreter",
            "--disassemble",
        )
        self.assertEqual(code, 0, err)
        self.assertIn("x = -u*2", out)
        self.assertIn("y = -cos(v)", out)
        self.assertIn("4 vertices (2x2)", out)

    def test_attached_formula_form(self) -> None:
        code, out, err = self._run("-z=-v", "-r=u==v ? 1 : 0", "-u", "2", "-v", "2", "--backend", "interpreter", "--disassemble")
        self.assertEqual(code, 0, err)
        self.assertIn("z = -v", out)
        self.assertIn("r = u==v ? 1 : 0", out)

    def test_leading_minus_formula_reaches_the_mesh(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "flipped.json"
            code, _, _ = self._run("-y", "-u", "-u", "3", "-v", "2", "--backend", "interpreter", "-o", str(path))
            self.assertEqual(code, 0)
            payload = json.loads(path.read_text(encoding="utf-8"))
        ys = [position[1] for position in payload["positions"]]
        self.assertEqual(ys[:3], [-0.0, -0.5, -1.0])

    def test_only_formula_flags_are_joined(self) -> None:
        argv = ["-e", "W=-u", "-u", "2", "-x", "-W", "-o", "-out.json", "--", "-y"]
        self.assertEqual(
            _attach_formula_values(argv),
            ["-e", "W=-u", "-u", "2", "-x=-W", "-o", "-out.json", "--", "-y"],
        )
        self.assertEqual(_attach_formula_values(["-b"]), ["-b"])

        code, _, _ = self._run("-e", "W=-u", "-x", "-W", "-u", "2", "-v", "2", "--backend", "interpreter")
        self.assertEqual(code, 0)


if __name__ == "__main__":
    unittest.main()
