from __future__ import annotations

import importlib.util
import math
import unittest

import numpy as np

from parasurf import AuxiliaryVariable, CompileError, SurfaceDefinition, SurfaceError, compile_surface
from parasurf.surface import validate_resolution

JAX_AVAILABLE = importlib.util.find_spec("jax") is not None

SPHERE = SurfaceDefinition(
    x="cos(U) * sin(V)",
    y="cos(V)",
    z="sin(U) * sin(V)",
    r="u",
    g="v",
    b="abs(cos U)",
    auxiliaries=(AuxiliaryVariable("U", "2*pi*u"), AuxiliaryVariable("V", "pi*v")),
)


class SurfaceCompileTests(unittest.TestCase):
    def test_auxiliaries_extend_variable_list_in_order(self) -> None:
        surface = compile_surface(SPHERE)
        self.assertEqual(surface.variables, ("u", "v", "U", "V"))
        self.assertEqual(surface.auxiliaries[0].variables, ("u", "v"))
        self.assertEqual(surface.auxiliaries[1].variables, ("u", "v", "U"))
        self.assertEqual(surface.positions[0].variables, ("u", "v", "U", "V"))

    def test_auxiliary_cannot_reference_itself_or_later_names(self) -> None:
        later = SurfaceDefinition(auxiliaries=(AuxiliaryVariable("A", "B"), AuxiliaryVariable("B", "u")))
        with self.assertRaises(CompileError) as ctx:
            compile_surface(later)
        self.assertEqual(ctx.exception.message, 'unknown identifier "B"')

        self_ref = SurfaceDefinition(auxiliaries=(AuxiliaryVariable("A", "A+1"),))
        with self.assertRaises(CompileError):
            compile_surface(self_ref)

    def test_invalid_auxiliary_names(self) -> None:
        for name in ("u", "sin", "1x", "a b", ""):
            with self.subTest(name=name):
                with self.assertRaises(SurfaceError):
                    compile_surface(SurfaceDefinition(auxiliaries=(AuxiliaryVariable(name, "1"),)))

        twice = (AuxiliaryVariable("A", "1"), AuxiliaryVariable("A", "2"))
        with self.assertRaises(SurfaceError):
            compile_surface(SurfaceDefinition(auxiliaries=twice))

    def test_default_constants_and_override(self) -> None:
        surface = compile_surface(SurfaceDefinition(x="pi", y="e"))
        position, _ = surface.evaluate_node(0.0, 0.0)
        self.assertEqual(position[:2], [math.pi, math.e])

        with self.assertRaises(CompileError):
            compile_surface(SurfaceDefinition(x="pi"), constants={})

    def test_parse_auxiliary_definition(self) -> None:
        aux = AuxiliaryVariable.parse("U=2*pi*u")
        self.assertEqual((aux.name, aux.formula), ("U", "2*pi*u"))
        aux = AuxiliaryVariable.parse("w2 = u==v ? 1 : 0")
        self.assertEqual((aux.name, aux.formula), ("w2", " u==v ? 1 : 0"))
        for text in ("U", "=u", "U="):
            with self.subTest(text=text):
                with self.assertRaises(SurfaceError):
                    AuxiliaryVariable.parse(text)


class SurfaceSamplingTests(unittest.TestCase):
    def test_resolution_limits(self) -> None:
        validate_resolution(2, 2)
        validate_resolution(256, 256)
        for res_u, res_v in ((1, 5), (5, 1), (0, 0), (257, 256), (1024, 128)):
            with self.subTest(res=(res_u, res_v)):
                with self.assertRaises(SurfaceError):
                    validate_resolution(res_u, res_v)

    def test_unknown_backend(self) -> None:
        with self.assertRaises(SurfaceError):
            compile_surface(SurfaceDefinition()).sample(4, 4, backend="gpu")

    def test_default_plane_with_padding(self) -> None:
        samples = compile_surface(SurfaceDefinition()).sample(4, 3, backend="interpreter")
        self.assertEqual(samples.positions.shape, (5, 6, 3))
        self.assertEqual(samples.colors.shape, (3, 4, 3))
        np.testing.assert_array_equal(samples.colors, np.ones((3, 4, 3)))

        # Inner corner (u=0, v=0) and padded corner (u=-1/3, v=-1/2).
        np.testing.assert_allclose(samples.positions[1, 1], [-1.0, 0.0, -1.0])
        np.testing.assert_allclose(samples.positions[3, 4], [1.0, 0.0, 1.0])
        np.testing.assert_allclose(samples.positions[0, 0], [2 * (-1 / 3) - 1, 0.0, 2 * (-1 / 2) - 1])

    def test_auxiliaries_feed_later_formulas(self) -> None:
        definition = SurfaceDefinition(
            x="V",
            y="U",
            z="0",
            auxiliaries=(AuxiliaryVariable("U", "2*u"), AuxiliaryVariable("V", "U+v")),
        )
        samples = compile_surface(definition).sample(2, 2, backend="interpreter")
        # Node (i=1, j=1): u=1, v=1, U=2, V=3.
        np.testing.assert_allclose(samples.positions[2, 2], [3.0, 2.0, 0.0])

    def test_eager_ternary_keeps_grid_finite(self) -> None:
        definition = SurfaceDefinition(x="v==0 ? 1 : 1/v", r="u==0 ? 0 : 1/u")
        samples = compile_surface(definition).sample(3, 3, backend="interpreter")
        self.assertTrue(np.isfinite(samples.positions).all())
        self.assertTrue(np.isfinite(samples.colors).all())
        self.assertEqual(samples.positions[1, 1, 0], 1.0)
        self.assertEqual(samples.colors[0, 0, 0], 0.0)

    @unittest.skipUnless(JAX_AVAILABLE, "jax is required for vectorized sampling")
    def test_jax_backend_agrees_with_interpreter(self) -> None:
        surface = compile_surface(SPHERE)
        scalar = surface.sample(8, 6, backend="interpreter")
        vectorized = surface.sample(8, 6, backend="jax")
        self.assertEqual(vectorized.positions.shape, scalar.positions.shape)
        self.assertEqual(vectorized.colors.shape, scalar.colors.shape)
        np.testing.assert_allclose(vectorized.positions, scalar.positions, rtol=1e-5, atol=1e-6)
        np.testing.assert_allclose(vectorized.colors, scalar.colors, rtol=1e-5, atol=1e-6)

    @unittest.skipUnless(JAX_AVAILABLE, "jax is required for vectorized sampling")
    def test_jax_backend_constant_fields_fill_grid(self) -> None:
        samples = compile_surface(SurfaceDefinition()).sample(3, 2, backend="jax")
        np.testing.assert_array_equal(samples.colors, np.ones((2, 3, 3)))
        np.testing.assert_array_equal(samples.positions[..., 1], np.zeros((4, 5)))


if __name__ == "__main__":
    unittest.main()
