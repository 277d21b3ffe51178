import unittest

from app import puzzles


class TestAnswerValidation(unittest.TestCase):
    def test_canonical_answer_ignores_case_and_outer_whitespace(self) -> None:
        self.assertTrue(puzzles.validate_answer(1, " document_sort "))

    def test_acceptable_alternative_matches(self) -> None:
        self.assertTrue(puzzles.validate_answer(2, "ARCHITECTURE"))
        self.assertTrue(puzzles.validate_answer(2, "cloud"))

    def test_near_miss_is_rejected(self) -> None:
        self.assertFalse(puzzles.validate_answer(2, "CLOUDS"))

    def test_internal_whitespace_is_collapsed(self) -> None:
        self.assertTrue(puzzles.validate_answer(11, "mission    complete"))
        self.assertTrue(puzzles.validate_answer(11, "missioncomplete"))

    def test_unknown_level_never_matches(self) -> None:
        self.assertFalse(puzzles.validate_answer(99, "CLOUD"))

    def test_check_answer_without_alternatives(self) -> None:
        self.assertTrue(puzzles.check_answer("zero\ttrust ", "ZERO TRUST"))
        self.assertFalse(puzzles.check_answer("zero", "ZERO TRUST"))

    def test_table_has_eleven_levels_in_order(self) -> None:
        self.assertEqual([p.id for p in puzzles.PUZZLES], list(range(1, 12)))

    def test_intro_puzzle(self) -> None:
        self.assertTrue(puzzles.validate_intro_puzzle("print servers are the weakest link"))
        self.assertTrue(puzzles.validate_intro_puzzle("PRINTSERVERSARETHEWEAKESTLINK"))
        self.assertFalse(puzzles.validate_intro_puzzle("print servers"))


class TestCaesar(unittest.TestCase):
    def test_final_transmission_decodes_with_shift_one(self) -> None:
        puzzle = puzzles.get_puzzle(11)
        decoded = puzzles.decrypt_caesar(puzzle.question, 1)
        self.assertEqual(decoded, "MISSION COMPLETE")
        self.assertTrue(puzzles.validate_answer(11, decoded))

    def test_wraps_and_preserves_case_and_symbols(self) -> None:
        self.assertEqual(puzzles.decrypt_caesar("Abc, xyZ!", 3), "Xyz, uvW!")

    def test_intro_cipher_decodes(self) -> None:
        from app.play import INTRO_CIPHER

        self.assertTrue(puzzles.validate_intro_puzzle(puzzles.decrypt_caesar(INTRO_CIPHER, 3)))


class TestEmail(unittest.TestCase):
    def test_minimal_shape_accepted(self) -> None:
        self.assertTrue(puzzles.is_valid_email("a@b.c"))

    def test_rejections(self) -> None:
        for value in ("not-an-email", "a@b", "a b@c.d", "@b.c", "", None):
            with self.subTest(value=value):
                self.assertFalse(puzzles.is_valid_email(value))


if __name__ == "__main__":
    unittest.main()
