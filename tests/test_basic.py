"""Basic tests for exact_tsne package."""

# Authors: exact_tsne developers
# License: BSD 3 clause


def test_import():
    """Test that the package can be imported."""
    from exact_tsne import TSNE, TSNEEmbedding

    assert TSNE is not None
    assert TSNEEmbedding is not None

    # Check version
    import exact_tsne

    assert hasattr(exact_tsne, "__version__")
