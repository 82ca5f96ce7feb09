"""
Embedding providers and the EmbeddingGenerator model lifecycle.
"""

import threading
import time
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from memory_embeddings.vector.embeddings import (
    DeterministicHashEmbedding,
    EmbeddingGenerator,
    IEmbeddingProvider,
    SentenceTransformerEmbedding,
    create_embedding_provider,
    get_embedding_generator,
    reset_embedding_generator,
)
from memory_embeddings.vector.errors import DimensionMismatchError, EmptyInputError, ModelLoadError
from memory_embeddings.vector.similarity import cosine_similarity
from memory_embeddings.vector.types import EmbeddingVector

from conftest import FakeProvider


def test_embedding_interface():
    """Test that the hash provider implements the interface correctly."""
    embedder = DeterministicHashEmbedding(dimension=384)
    assert isinstance(embedder, IEmbeddingProvider)
    assert embedder.get_dimension() == 384
    assert embedder.model_name == "hash-384"


def test_deterministic_embedding():
    """Test that the same input always produces the same unit-length output."""
    embedder = DeterministicHashEmbedding(dimension=384)

    vector1 = embedder.embed_text("Hello, world!")
    vector2 = DeterministicHashEmbedding(dimension=384).embed_text("Hello, world!")

    assert vector1 == vector2
    assert len(vector1) == 384
    assert np.linalg.norm(vector1) == pytest.approx(1.0)


def test_different_inputs_produce_different_vectors():
    embedder = DeterministicHashEmbedding(dimension=64)
    assert embedder.embed_text("Hello, world!") != embedder.embed_text("Goodbye, world!")


def test_create_embedding_provider():
    assert isinstance(create_embedding_provider("hash", dimension=16), DeterministicHashEmbedding)

    provider = create_embedding_provider("sentence_transformers", model_name="some/model")
    assert isinstance(provider, SentenceTransformerEmbedding)
    assert provider.model_name == "some/model"

    with pytest.raises(ModelLoadError):
        create_embedding_provider("nope")


def test_sentence_transformer_provider_encodes_normalized():
    provider = SentenceTransformerEmbedding("some/model")
    fake_model = MagicMock()
    fake_model.encode.return_value = np.array([0.6, 0.8])
    fake_model.get_sentence_embedding_dimension.return_value = 2

    with patch("sentence_transformers.SentenceTransformer", return_value=fake_model) as mock_cls:
        provider.load()

    mock_cls.assert_called_once_with("some/model")
    assert provider.embed_text("hello") == [0.6, 0.8]
    fake_model.encode.assert_called_once_with("hello", convert_to_numpy=True, normalize_embeddings=True)
    assert provider.get_dimension() == 2


def test_sentence_transformer_provider_requires_load():
    provider = SentenceTransformerEmbedding("some/model")
    with pytest.raises(ModelLoadError):
        provider.embed_text("hello")


def test_generate_returns_vector_with_model_and_timestamp(generator):
    vector = generator.generate("Fix   the   bug!!")

    assert isinstance(vector, EmbeddingVector)
    assert vector.dimensions == 384
    assert vector.model == "test-model"
    assert vector.created_at is not None
    assert not vector.is_zero()


def test_generate_embeds_normalized_text(generator, fake_provider):
    generator.generate("Fix   the   bug!!")
    assert fake_provider.embed_calls == ["Fix the bug!!"]


def test_model_is_loaded_lazily_and_once(generator, fake_provider):
    assert not generator.is_loaded
    assert fake_provider.load_calls == 0

    generator.generate("first")
    generator.generate("second")
    generator.generate_batch(["third", "fourth"])

    assert generator.is_loaded
    assert fake_provider.load_calls == 1


def test_concurrent_first_use_loads_once():
    load_count = []

    class SlowProvider(FakeProvider):
        def load(self):
            load_count.append(1)
            time.sleep(0.05)

    provider = SlowProvider()
    factory = MagicMock(return_value=provider)
    generator = EmbeddingGenerator(provider_factory=factory, dimension=384, batch_pause_sec=0)

    errors = []

    def worker():
        try:
            generator.generate("concurrent call")
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert factory.call_count == 1
    assert len(load_count) == 1


@pytest.mark.parametrize("text", ["", "   ", "\n\t ", None])
def test_empty_input_rejected_before_model_load(generator, fake_provider, text):
    with pytest.raises(EmptyInputError):
        generator.generate(text)
    assert fake_provider.load_calls == 0


def test_dimension_mismatch_is_an_error():
    provider = FakeProvider(dimension=128)
    generator = EmbeddingGenerator(provider_factory=lambda: provider, dimension=384)

    with pytest.raises(DimensionMismatchError) as exc:
        generator.generate("some text")

    assert exc.value.expected == 384
    assert exc.value.actual == 128


def test_model_load_failure_is_fatal_and_not_retried():
    factory = MagicMock(side_effect=OSError("weights not found"))
    generator = EmbeddingGenerator(provider_factory=factory, dimension=384)

    with pytest.raises(ModelLoadError, match="weights not found"):
        generator.generate("text")
    with pytest.raises(ModelLoadError):
        generator.preload()

    assert factory.call_count == 1
    assert not generator.is_loaded


def test_preload_and_model_info(generator):
    assert generator.model_info() == {"name": generator.model_name, "dimensions": 384, "loaded": False}

    generator.preload()

    info = generator.model_info()
    assert info["name"] == "test-model"
    assert info["loaded"] is True


def test_batch_failure_substitutes_zero_vector():
    texts = [f"text number {i}" for i in range(1, 13)]
    provider = FakeProvider(fail_on={"text number 7"})
    generator = EmbeddingGenerator(provider_factory=lambda: provider, dimension=384, batch_pause_sec=0)

    results = generator.generate_batch(texts)

    assert len(results) == 12
    assert results[6].is_zero()
    assert results[6].dimensions == 384
    for index, vector in enumerate(results):
        if index != 6:
            assert not vector.is_zero()
            assert vector.dimensions == 384


def test_batch_empty_text_becomes_zero_vector(generator):
    results = generator.generate_batch(["hello", "   ", "world"])
    assert [v.is_zero() for v in results] == [False, True, False]


def test_batch_pauses_between_chunks_only():
    sleeps = []
    provider = FakeProvider()
    generator = EmbeddingGenerator(provider_factory=lambda: provider, dimension=384,
                                   batch_size=5, batch_pause_sec=0.1, sleep=sleeps.append)

    generator.generate_batch([f"t{i}" for i in range(12)])

    # 12 texts in chunks of 5 -> 3 chunks, 2 pauses
    assert sleeps == [0.1, 0.1]


def test_batch_propagates_model_load_error():
    generator = EmbeddingGenerator(provider_factory=MagicMock(side_effect=RuntimeError("boom")), dimension=384)
    with pytest.raises(ModelLoadError):
        generator.generate_batch(["a", "b"])


def test_batch_wrong_length_text_becomes_zero_vector():
    class ShortForOneText(FakeProvider):
        def embed_text(self, text):
            values = super().embed_text(text)
            return values[:383] if text == "bad" else values

    provider = ShortForOneText()
    generator = EmbeddingGenerator(provider_factory=lambda: provider, dimension=384, batch_pause_sec=0)

    results = generator.generate_batch(["a", "bad", "c"])

    assert len(results) == 3
    assert [v.is_zero() for v in results] == [False, True, False]
    assert all(v.dimensions == 384 for v in results)


def test_batch_leading_blank_placeholder_uses_loaded_model(generator):
    results = generator.generate_batch(["   ", "hello world"])

    assert results[0].is_zero()
    assert results[0].model == "test-model"
    assert results[0].model == results[1].model
    assert cosine_similarity(results[0], results[1]) == 0.0


def test_batch_empty_list_does_not_load_model(generator, fake_provider):
    assert generator.generate_batch([]) == []
    assert fake_provider.load_calls == 0


@pytest.mark.parametrize("kwargs", [{"batch_size": 0}, {"batch_size": -1}, {"batch_pause_sec": -0.5}, {"dimension": 0}])
def test_generator_rejects_invalid_pacing(kwargs):
    params = {"provider_factory": FakeProvider, "dimension": 384}
    params.update(kwargs)
    with pytest.raises(ValueError):
        EmbeddingGenerator(**params)


def test_shared_generator_is_reused(monkeypatch):
    monkeypatch.setenv("EMBED_PROVIDER", "hash")
    reset_embedding_generator()
    try:
        first = get_embedding_generator()
        assert get_embedding_generator() is first

        vector = first.generate("shared model")
        assert vector.model == "hash-384"
    finally:
        reset_embedding_generator()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
