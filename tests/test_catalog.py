from eduquiz.catalog import QuizCatalog


def _rows():
    return [
        {"id": "3", "subject": "Arithmetic Sequence", "category": "Solving", "level": 3,
         "question": "Q3", "answer": "c"},
        {"id": "1", "subject": "Arithmetic Sequence", "category": "Solving", "level": 1,
         "question": "Q1", "answer": "a", "accepted_answers": ["A"]},
        {"id": "2", "subject": "Arithmetic Sequence", "category": "Problem Solving", "level": 1,
         "question": "Q2", "answer": "b", "solution": "because"},
        {"id": "9", "subject": "Uniform Motion in Physics", "category": "Solving", "level": 1,
         "question": "Q9", "answer": "z"},
    ]


def test_counts_by_category(backend, fake_client):
    fake_client.tables["quizzes"] = _rows()
    catalog = QuizCatalog(backend, "Arithmetic Sequence")
    assert catalog.count_by_category() == {"Solving": 2, "Problem Solving": 1}


def test_items_for_category_sorted_by_level(backend, fake_client):
    fake_client.tables["quizzes"] = _rows()
    items = QuizCatalog(backend, "Arithmetic Sequence").items_for_category("Solving")
    assert isinstance(items, tuple)
    assert [q.id for q in items] == ["1", "3"]
    assert items[0].accepted_answers == ["A"]


def test_load_is_cached_until_forced(backend, fake_client):
    fake_client.tables["quizzes"] = _rows()
    catalog = QuizCatalog(backend, "Arithmetic Sequence")
    catalog.count_by_category()
    catalog.items_for_category("Problem Solving")
    assert fake_client.calls.count(("quizzes", "select")) == 1

    fake_client.tables["quizzes"].append(
        {"id": "4", "subject": "Arithmetic Sequence", "category": "Solving", "level": 2,
         "question": "Q4", "answer": "d"}
    )
    assert len(catalog.items_for_category("Solving")) == 2
    catalog.load(force_reload=True)
    assert [q.id for q in catalog.items_for_category("Solving")] == ["1", "4", "3"]


def test_solution_is_loaded(backend, fake_client):
    fake_client.tables["quizzes"] = _rows()
    items = QuizCatalog(backend, "Arithmetic Sequence").items_for_category("Problem Solving")
    assert [q.solution for q in items] == ["because"]


def test_read_failure_gives_empty_catalog(backend, fake_client):
    fake_client.failing_tables.add("quizzes")
    catalog = QuizCatalog(backend, "Arithmetic Sequence")
    assert catalog.load() == []
    assert catalog.items_for_category("Solving") == ()
