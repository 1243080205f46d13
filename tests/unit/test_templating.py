from flowrunner.templating import resolve, resolve_value


def test_template_without_placeholders_is_unchanged():
    assert resolve("plain text, no markers", {"a": 1}) == "plain text, no markers"


def test_nested_paths_and_list_indexes_resolve():
    data = {"user": {"name": "Ada", "tags": ["admin", "ops"]}, "count": 3}
    assert resolve("Hi ${user.name} (${user.tags.1}) x${count}", data) == "Hi Ada (ops) x3"


def test_unresolved_placeholders_are_preserved():
    data = {"user": {"name": "Ada"}}
    assert (
        resolve("Hi ${user.name}, ${user.email} / ${missing}", data)
        == "Hi Ada, ${user.email} / ${missing}"
    )


def test_none_values_count_as_missing():
    assert resolve("${a.b}", {"a": None}) == "${a.b}"
    assert resolve("${a}", {"a": None}) == "${a}"


def test_values_are_stringified():
    data = {"flag": True, "obj": {"k": 1}, "n": 2.5}
    assert resolve("${flag} ${obj} ${n}", data) == 'true {"k": 1} 2.5'


def test_resolve_value_walks_structures():
    body = {"name": "${user}", "items": ["${item}", 3], "fixed": None}
    assert resolve_value(body, {"user": "bob", "item": "x"}) == {
        "name": "bob",
        "items": ["x", 3],
        "fixed": None,
    }
