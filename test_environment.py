import gc
import unittest
from environment import Environment, GLOBAL_FRAME
from errors import DuplicateBinding, ImmutableAssignment, UndefinedIdentifier
from values import NativeFunction

class TestEnvironment(unittest.TestCase):
    def setUp(self):
        self.env = Environment()

    def test_declare_and_get(self):
        """Test declaring a variable and reading it back."""
        binding = self.env.declare("x", 1.0)
        self.assertEqual(binding.value, 1.0)
        self.assertFalse(binding.is_constant)
        self.assertEqual(self.env.get("x"), 1.0)

    def test_declare_without_value_is_null(self):
        self.env.declare("x")
        self.assertIsNone(self.env.get("x"))

    def test_duplicate_in_same_frame(self):
        """Test redeclaring in one frame raises DuplicateBinding."""
        self.env.declare("x", 1.0)
        with self.assertRaises(DuplicateBinding):
            self.env.declare("x", 2.0)
        self.assertEqual(self.env.get("x"), 1.0)

    def test_shadowing_in_child_frame(self):
        """Test an inner declaration hides the outer one until the frame exits."""
        self.env.declare("x", 1.0)
        self.env.enter_scope()
        self.env.declare("x", 2.0)
        self.assertEqual(self.env.get("x"), 2.0)
        self.env.exit_scope()
        self.assertEqual(self.env.get("x"), 1.0)

    def test_assign_walks_outwards(self):
        self.env.declare("x", 1.0)
        self.env.enter_scope()
        self.env.assign("x", 5.0)
        self.env.exit_scope()
        self.assertEqual(self.env.get("x"), 5.0)

    def test_constant_cannot_be_assigned(self):
        """Test assigning to a constant raises and keeps the old value."""
        self.env.declare("PI", 3.0, is_constant=True)
        with self.assertRaises(ImmutableAssignment):
            self.env.assign("PI", 4.0)
        self.assertEqual(self.env.get("PI"), 3.0)

    def test_undefined_identifier(self):
        with self.assertRaises(UndefinedIdentifier) as ctx:
            self.env.get("missing")
        self.assertIn("missing", str(ctx.exception))
        with self.assertRaises(UndefinedIdentifier):
            self.env.assign("missing", 1.0)

    def test_lookup_returns_none_when_missing(self):
        self.assertIsNone(self.env.lookup("nope"))

    def test_cannot_exit_global_scope(self):
        with self.assertRaises(RuntimeError):
            self.env.exit_scope()

    def test_depth_tracks_scopes(self):
        self.assertEqual(self.env.depth, 1)
        self.env.enter_scope()
        self.env.enter_scope()
        self.assertEqual(self.env.depth, 3)
        self.env.exit_scope()
        self.env.exit_scope()
        self.assertEqual(self.env.depth, 1)
        self.assertEqual(self.env.current, GLOBAL_FRAME)

    def test_uncaptured_frames_are_reclaimed(self):
        """Test an exited frame nobody holds frees its handle for the next scope."""
        handle = self.env.enter_scope()
        self.env.declare("tmp", 1.0)
        self.env.exit_scope()
        self.assertEqual(self.env.live_frames, 1)
        with self.assertRaises(KeyError):
            self.env.frame(handle)

        self.assertEqual(self.env.enter_scope(), handle)
        self.assertIsNone(self.env.lookup("tmp"))
        self.env.exit_scope()
        self.assertEqual(self.env.arena_size, 2)

    def test_captured_frames_survive_exit(self):
        """Test a captured frame keeps its bindings after its scope exits."""
        self.env.enter_scope()
        self.env.declare("count", 0.0)
        frame = self.env.capture()
        self.env.exit_scope()

        self.assertEqual(self.env.live_frames, 2)
        self.assertIsNone(self.env.lookup("count"))

        # Re-enter through the captured handle, as a closure call does
        self.env.enter_scope(parent=frame.handle)
        self.env.assign("count", 1.0)
        self.assertEqual(self.env.get("count"), 1.0)
        self.env.exit_scope()
        self.assertEqual(self.env.frame(frame.handle).bindings["count"].value, 1.0)

        handle = frame.handle
        del frame
        gc.collect()
        with self.assertRaises(KeyError):
            self.env.frame(handle)
        self.assertEqual(self.env.live_frames, 1)

    def test_child_frame_keeps_parent_alive(self):
        self.env.enter_scope()
        self.env.declare("outer", 1.0)
        self.env.enter_scope()
        inner = self.env.capture()
        self.env.exit_scope()
        self.env.exit_scope()
        self.assertEqual(self.env.live_frames, 3)
        self.assertEqual(self.env.frame(inner.parent_handle).bindings["outer"].value, 1.0)

    def test_unwind_drops_leftover_scopes(self):
        self.env.enter_scope()
        height = self.env.stack_height
        self.env.enter_scope()
        self.env.enter_scope()
        self.env.unwind(height)
        self.assertEqual(self.env.stack_height, 2)
        self.env.unwind(0)
        self.assertEqual(self.env.stack_height, 1)
        self.assertEqual(self.env.current, GLOBAL_FRAME)

    def test_enter_scope_with_explicit_parent(self):
        """Test a frame parented elsewhere does not see the caller's bindings."""
        self.env.enter_scope()
        self.env.declare("caller_local", 1.0)
        self.env.enter_scope(parent=GLOBAL_FRAME)
        self.assertIsNone(self.env.lookup("caller_local"))
        self.env.exit_scope()
        self.assertEqual(self.env.get("caller_local"), 1.0)

    def test_define_native(self):
        binding = self.env.define_native("twice", lambda x: x * 2, arity=1)
        self.assertTrue(binding.is_constant)
        fn = self.env.get("twice")
        self.assertIsInstance(fn, NativeFunction)
        self.assertEqual(fn.arity, 1)
        self.assertEqual(fn.call(None, [2.0]), 4.0)

    def test_dump(self):
        self.env.declare("a", 1.0)
        self.env.declare("K", "k", is_constant=True)
        self.env.enter_scope()
        self.env.declare("b", [1.0])
        text = self.env.dump()
        self.assertIn("--- frame 1 ---\n  b = [1]", text)
        self.assertIn("  K (const) = k", text)
        self.assertIn("  a = 1", text)

if __name__ == '__main__':
    unittest.main()
