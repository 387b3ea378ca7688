from decimal import Decimal

from django.test import SimpleTestCase

from results import grading
from results.exceptions import InvalidMarksError, NoMatchingBandError
from results.grading import GradeBand


class GpaFiveScaleTest(SimpleTestCase):

    def test_band_boundaries(self):
        self.assertEqual(grading.grade(80, 100), (Decimal('80.00'), 'A+', Decimal('5.00')))
        self.assertEqual(grading.grade('79.99', 100).grade, 'A')
        self.assertEqual(grading.grade(70, 100).gpa, Decimal('4.00'))
        self.assertEqual(grading.grade(60, 100).grade, 'A-')
        self.assertEqual(grading.grade(50, 100).grade, 'B')
        self.assertEqual(grading.grade(40, 100).grade, 'C')
        self.assertEqual(grading.grade(33, 100).grade, 'D')
        self.assertEqual(grading.grade(0, 100), (Decimal('0.00'), 'F', Decimal('0.00')))

    def test_band_uses_unrounded_percentage(self):
        """32.999% rounds to 33.00 for display but still falls in F"""
        outcome = grading.grade('32.999', 100)
        self.assertEqual(outcome.percentage, Decimal('33.00'))
        self.assertEqual(outcome.grade, 'F')

    def test_percentage_rounds_half_up(self):
        self.assertEqual(grading.grade(2, 3).percentage, Decimal('66.67'))
        self.assertEqual(grading.grade(45, 50).percentage, Decimal('90.00'))


class OtherScalesTest(SimpleTestCase):

    def test_gpa_four(self):
        self.assertEqual(grading.grade(90, 100, grading.GPA_4).grade, 'A')
        self.assertEqual(grading.grade(85, 100, grading.GPA_4).gpa, Decimal('3.00'))
        self.assertEqual(grading.grade(59, 100, grading.GPA_4).grade, 'F')

    def test_percentage_scale_has_no_gpa(self):
        outcome = grading.grade(65, 100, grading.PERCENTAGE)
        self.assertEqual(outcome.grade, 'Good')
        self.assertIsNone(outcome.gpa)

    def test_custom_bands(self):
        bands = [GradeBand(0, '49.99', 'Fail', 0), GradeBand(50, 100, 'Pass', 1)]
        self.assertEqual(grading.grade(50, 100, grading.CUSTOM, bands).grade, 'Pass')
        self.assertEqual(grading.grade(10, 100, grading.CUSTOM, bands).gpa, Decimal('0.00'))

    def test_custom_gap_raises(self):
        bands = [GradeBand(0, '49.99', 'Fail', 0), GradeBand(50, 100, 'Pass', 1)]
        with self.assertRaises(NoMatchingBandError):
            grading.grade('49.995', 100, grading.CUSTOM, bands)

    def test_custom_without_bands(self):
        with self.assertRaises(NoMatchingBandError):
            grading.grade(50, 100, grading.CUSTOM)

    def test_unknown_scale(self):
        with self.assertRaises(ValueError):
            grading.grade(50, 100, 'letters')


class InvalidInputTest(SimpleTestCase):

    def test_marks_out_of_range(self):
        with self.assertRaises(InvalidMarksError):
            grading.grade(101, 100)
        with self.assertRaises(InvalidMarksError):
            grading.grade(-1, 100)

    def test_full_marks_must_be_positive(self):
        with self.assertRaises(InvalidMarksError):
            grading.grade(0, 0)

    def test_non_numeric_marks(self):
        for value in (None, 'abc', True):
            with self.assertRaises(InvalidMarksError):
                grading.grade(value, 100)

    def test_nan_and_infinity_rejected(self):
        for value in ('NaN', float('nan'), 'Infinity', float('-inf'), Decimal('sNaN')):
            with self.assertRaises(InvalidMarksError):
                grading.grade(value, 100)
        with self.assertRaises(InvalidMarksError):
            grading.grade(50, 'Infinity')

    def test_band_bounds_validated(self):
        with self.assertRaises(ValueError):
            GradeBand(60, 50, 'X')
        with self.assertRaises(ValueError):
            GradeBand(0, 101, 'X')


class HelpersTest(SimpleTestCase):

    def test_default_bands(self):
        bands = grading.default_bands(grading.GPA_5)
        self.assertEqual(bands[0], GradeBand(80, 100, 'A+', 5))
        self.assertEqual(bands[1].max_percentage, Decimal('79.99'))
        self.assertEqual(bands[-1].grade, 'F')

    def test_band_dict_round_trip(self):
        band = GradeBand(50, '59.99', 'B', '3.00', 'Good')
        self.assertEqual(GradeBand.from_dict(band.as_dict()), band)

    def test_rounding(self):
        self.assertEqual(grading.round2(Decimal('2.345')), Decimal('2.35'))
        self.assertEqual(grading.round0(Decimal('66.5')), 67)
        self.assertEqual(grading.round0(Decimal('33.33')), 33)

    def test_overall_grade(self):
        self.assertEqual(grading.overall_grade(Decimal('5.00')), 'A+')
        self.assertEqual(grading.overall_grade(Decimal('4.50')), 'A')
        self.assertEqual(grading.overall_grade(Decimal('1.50')), 'D')
        self.assertEqual(grading.overall_grade(0), 'F')

    def test_has_two_places(self):
        self.assertTrue(grading.has_two_places(Decimal('33.30')))
        self.assertTrue(grading.has_two_places(Decimal('1E+30')))
        self.assertFalse(grading.has_two_places(Decimal('33.335')))
