"""
====================================================
Exact t-SNE on the digits dataset
====================================================

Embeds a subset of the scikit-learn digits dataset, once by driving a
:class:`~exact_tsne.TSNEEmbedding` step by step and once through the
:class:`~exact_tsne.TSNE` estimator.
"""

# Authors: exact_tsne developers
# License: BSD 3 clause

import numpy as np
from sklearn.datasets import load_digits

from exact_tsne import TSNE, TSNEEmbedding, VectorDistances


# Load data
digits = load_digits()
X = digits.data[:300]
y = digits.target[:300]

# Step by step, with the labels kept as per-item metadata
print("Running the stateful embedding...")
embedding = TSNEEmbedding(VectorDistances(X), list(y), perplexity=30, random_state=42)
for _ in range(500):
    error = embedding.step()
    if embedding.iteration % 100 == 0:
        print(f"Iteration {embedding.iteration}: error = {error:.4f}")

embedding.normalize()
coordinates = embedding.embedding

# Distance from every point to the centroid of its digit
centroids = {label: coordinates[y == label].mean(axis=0) for label in set(y)}
spread = np.mean(
    [
        np.linalg.norm(point - centroids[label])
        for point, label in zip(coordinates, embedding.metadata)
    ]
)
print(f"Mean distance to the digit centroid: {spread:.4f}")

# Same data through the estimator
print("Running the estimator...")
tsne = TSNE(n_components=2, perplexity=30, n_iter=500, random_state=42, verbose=1)
X_embedded = tsne.fit_transform(X)
print(f"Embedding shape: {X_embedded.shape}")
print(f"Final KL divergence: {tsne.kl_divergence_:.4f}")
