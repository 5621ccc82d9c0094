"""Unit tests for the lazily loaded embedding model."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from paper_rag.exceptions import EmbeddingError
from paper_rag.ingestion import embedder as embedder_module
from paper_rag.ingestion.embedder import EmbeddingModel, get_embedding_model

HF_PATH = "paper_rag.ingestion.embedder.HuggingFaceEmbeddings"


def _fake_hf(dim: int = 4) -> MagicMock:
    hf = MagicMock()
    hf.embed_documents.side_effect = lambda texts: [[float(len(t))] * dim for t in texts]
    return hf


class TestEmbeddingModel:
    def test_embeds_in_sequential_batches(self) -> None:
        hf = _fake_hf()
        with patch(HF_PATH, return_value=hf):
            model = EmbeddingModel("m", batch_size=2)
            vectors = model.embed(["a", "bb", "ccc", "dddd", "eeeee"])

        assert [v[0] for v in vectors] == [1.0, 2.0, 3.0, 4.0, 5.0]
        batches = [call.args[0] for call in hf.embed_documents.call_args_list]
        assert batches == [["a", "bb"], ["ccc", "dddd"], ["eeeee"]]

    def test_model_loaded_lazily_and_once(self) -> None:
        with patch(HF_PATH, return_value=_fake_hf()) as cls:
            model = EmbeddingModel("m", batch_size=8)
            assert not model.is_loaded
            cls.assert_not_called()

            model.embed(["one"])
            model.embed(["two"])

        cls.assert_called_once()
        assert model.is_loaded

    def test_normalised_sentence_embeddings_requested(self) -> None:
        with patch(HF_PATH, return_value=_fake_hf()) as cls:
            EmbeddingModel("sentence-transformers/all-MiniLM-L6-v2", batch_size=16).embed(["x"])

        kwargs = cls.call_args.kwargs
        assert kwargs["model_name"] == "sentence-transformers/all-MiniLM-L6-v2"
        assert kwargs["encode_kwargs"]["normalize_embeddings"] is True

    def test_concurrent_first_calls_share_one_load(self) -> None:
        def slow_load(**kwargs):
            time.sleep(0.05)
            return _fake_hf()

        with patch(HF_PATH, side_effect=slow_load) as cls:
            model = EmbeddingModel("m", batch_size=4)
            threads = [threading.Thread(target=model.embed, args=(["t"],)) for _ in range(5)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert cls.call_count == 1

    def test_failed_load_raises_and_is_retried(self) -> None:
        with patch(HF_PATH, side_effect=[OSError("model not found"), _fake_hf()]) as cls:
            model = EmbeddingModel("m")
            with pytest.raises(EmbeddingError, match="Failed to load"):
                model.embed(["x"])
            assert not model.is_loaded

            assert model.embed(["x"]) == [[1.0] * 4]
        assert cls.call_count == 2

    def test_batch_failure_raises_embedding_error(self) -> None:
        hf = MagicMock()
        hf.embed_documents.side_effect = RuntimeError("CUDA out of memory")
        with patch(HF_PATH, return_value=hf):
            with pytest.raises(EmbeddingError, match="batch 1/1"):
                EmbeddingModel("m").embed(["x"])

    def test_dimension_mismatch_raises(self) -> None:
        with patch(HF_PATH, return_value=_fake_hf(dim=3)):
            with pytest.raises(EmbeddingError, match="expected 384"):
                EmbeddingModel("m", dimension=384).embed(["x"])

    def test_empty_input_does_not_load(self) -> None:
        with patch(HF_PATH) as cls:
            assert EmbeddingModel("m").embed([]) == []
        cls.assert_not_called()

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            EmbeddingModel("m", batch_size=0)


def test_get_embedding_model_is_shared(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(embedder_module, "_default_model", None)
    first = get_embedding_model()
    assert get_embedding_model() is first
    assert first.dimension == 384
    assert not first.is_loaded
