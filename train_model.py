#!/usr/bin/env python3
"""
Скрипт обучения модели распознавания из Excel-корпуса.

Пример:
    python train_model.py corpus.xlsx --output model/corpus.json
"""
import argparse
import sys

from bot import build_context_store
from config import load_config
from nlu import CorpusError, Recognizer
from nlu.classifiers import LLMRecognitionEngine
from services.llm import OllamaClient


def train(excel_path: str, output_path: str) -> bool:
    """Импортирует корпус, обучает движок и сохраняет модель."""
    config = load_config(require_token=False)
    engine = LLMRecognitionEngine(OllamaClient(base_url=config.OLLAMA_URL), ner_threshold=config.NER_THRESHOLD)
    recognizer = Recognizer(engine, build_context_store(config), threshold=config.RECOGNIZER_THRESHOLD)

    print("=" * 50)
    print("ОБУЧЕНИЕ МОДЕЛИ РАСПОЗНАВАНИЯ")
    print("=" * 50)
    print(f"Корпус: {excel_path}")

    try:
        recognizer.load_excel(excel_path, model_path=output_path)
    except CorpusError as e:
        print(f"❌ Ошибка корпуса: {e}")
        return False

    corpus = engine.corpus
    print(f"✅ Намерений: {len(corpus.intents)}, сущностей: {len(corpus.entities)}")
    print(f"✅ Локали: {', '.join(corpus.locales)}")
    print(f"✅ Модель сохранена: {output_path}")
    return True


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train the recognition model from an Excel corpus.")
    parser.add_argument("excel", help="Path to the .xlsx corpus (Intents, Answers, Entities sheets)")
    parser.add_argument("--output", default=None, help="Where to save the model (defaults to MODEL_PATH)")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    output = args.output or load_config(require_token=False).MODEL_PATH
    sys.exit(0 if train(args.excel, output) else 1)
