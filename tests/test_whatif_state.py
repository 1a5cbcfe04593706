import unittest

from gradetrackr.core.scales import GradingScale
from gradetrackr.state.whatif_state import WhatIfScratchpad


class WhatIfScratchpadTests(unittest.TestCase):
    def test_prefills_from_tracked_record(self):
        pad = WhatIfScratchpad(GradingScale.DEFAULT, initial_cgpa=3.456, initial_credits=42)
        self.assertEqual(pad.current_cgpa, "3.46")
        self.assertEqual(pad.current_credits, "42")

        empty = WhatIfScratchpad(GradingScale.DEFAULT)
        self.assertEqual((empty.current_cgpa, empty.current_credits), ("", ""))

    def test_new_course_defaults(self):
        pad = WhatIfScratchpad(GradingScale.US_STANDARD_4_0)
        course = pad.add_course()
        self.assertEqual(course.credit_hours, 3.0)
        self.assertEqual(course.grade, "A")
        self.assertEqual(pad.new_credits, 3.0)

    def test_projection(self):
        pad = WhatIfScratchpad(GradingScale.DEFAULT, initial_cgpa=4.0, initial_credits=30)
        course = pad.add_course()

        self.assertAlmostEqual(pad.projected(), 135 / 33)
        self.assertAlmostEqual(pad.delta(), 135 / 33 - 4.0)
        self.assertEqual(pad.total_credits_after, 33.0)

        pad.update_course(course.id, grade="F", credit_hours="6")
        self.assertAlmostEqual(pad.projected(), 120 / 36)

    def test_no_courses_keeps_current(self):
        pad = WhatIfScratchpad(GradingScale.DEFAULT, initial_cgpa=3.2, initial_credits=10)
        self.assertAlmostEqual(pad.projected(), 3.2)
        self.assertAlmostEqual(pad.delta(), 0.0)

    def test_invalid_inputs_block_projection(self):
        pad = WhatIfScratchpad(GradingScale.NUC_REFORM_4_0)
        pad.current_cgpa = "4.5"
        pad.current_credits = "abc"
        pad.add_course()

        self.assertIsNone(pad.projected())
        self.assertIsNone(pad.delta())
        self.assertEqual(set(pad.errors), {"current_cgpa", "current_credits"})
        self.assertEqual(pad.total_credits_after, 3.0)

    def test_bad_credit_text_counts_as_zero(self):
        pad = WhatIfScratchpad(GradingScale.DEFAULT)
        course = pad.add_course()
        pad.update_course(course.id, credit_hours="three")
        self.assertEqual(pad.new_credits, 0.0)

    def test_non_finite_credit_text_counts_as_zero(self):
        pad = WhatIfScratchpad(GradingScale.DEFAULT, initial_cgpa=3.0, initial_credits=10)
        course = pad.add_course()
        pad.update_course(course.id, credit_hours="nan")
        self.assertEqual(course.credit_hours, 0.0)
        pad.current_credits = "inf"
        self.assertEqual(pad.total_credits_after, 0.0)
        self.assertIsNone(pad.projected())

    def test_remove_and_reset(self):
        pad = WhatIfScratchpad(GradingScale.DEFAULT, initial_cgpa=3.0, initial_credits=20)
        first = pad.add_course()
        pad.add_course()
        pad.remove_course(first.id)
        self.assertEqual(len(pad.courses), 1)

        pad.reset()
        self.assertEqual(pad.courses, [])
        self.assertEqual((pad.current_cgpa, pad.current_credits), ("", ""))


if __name__ == "__main__":
    unittest.main()
