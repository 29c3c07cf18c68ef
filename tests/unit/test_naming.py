"""
Unit tests for naming utilities.
"""

from inline_rust.utils.naming import (
    SymbolMinter,
    generate_unique_name,
    library_stem,
    sanitize_identifier,
)


class TestSanitizeIdentifier:
    """Test identifier sanitising."""

    def test_dotted_name(self):
        assert sanitize_identifier("pkg.mod") == "pkg_mod"

    def test_leading_digit(self):
        assert sanitize_identifier("1st") == "_1st"

    def test_empty(self):
        assert sanitize_identifier("") == "unnamed"


class TestGenerateUniqueName:
    def test_unused(self):
        assert generate_unique_name("a", set()) == "a"

    def test_counter(self):
        assert generate_unique_name("a", {"a", "a_1"}) == "a_2"


class TestSymbolMinter:
    """Test exported symbol minting."""

    def test_mint_is_fresh(self):
        minter = SymbolMinter("pkg.mod")
        symbols = [minter.mint() for _ in range(50)]
        assert len(set(symbols)) == 50
        assert minter.issued == set(symbols)

    def test_symbols_are_identifiers(self):
        symbol = SymbolMinter("pkg.my-mod").mint()
        assert symbol.isidentifier()
        assert symbol.startswith("inline_rust_pkg_my_mod_")
        assert symbol.endswith("_q0")

    def test_similar_unit_names_do_not_collide(self):
        """Test that units whose names sanitise identically stay distinct."""
        assert SymbolMinter("a.b").mint() != SymbolMinter("a_b").mint()

    def test_binding_name(self):
        minter = SymbolMinter("pkg.mod")
        symbol = minter.mint()
        assert minter.binding_name(symbol) == "_inline_rust_q0"


def test_library_stem():
    assert library_stem("pkg.mod") == "mod_inline_rust"
