# -*- coding: utf-8 -*-
"""
End-to-end scenarios: marked source in, instrumented source out, then executed.
"""

import sys

import pytest

from rewriter import instrument_code, validate_output


def test_basic_variable_declaration(run):
    output = instrument_code("#p count = 1")
    assert 'count = 1' in output
    assert "print('#p count => ', count)" in output

    namespace, lines = run("#p count = 1")
    assert namespace['count'] == 1
    assert lines == ['#p count =>  1']


def test_expression_in_variable_declaration(run):
    output = instrument_code("#p total = 1 + 1")
    assert 'total = 1 + 1' in output
    assert "print('#p total => ', total)" in output

    _, lines = run("#p total = 1 + 1")
    assert lines == ['#p total =>  2']


def test_object_property(run):
    code = 'obj = {"name": "John", #p "age": 3}'
    output = instrument_code(code)
    assert "print('#p age => ', value)" in output
    assert "'age': " in output

    namespace, lines = run(code)
    assert namespace['obj'] == {'name': 'John', 'age': 3}
    assert lines == ['#p age =>  3']


def test_object_property_with_variable_key(run):
    code = 'age = "years"\nobj = {"name": "John", #p age: 3}'
    namespace, lines = run(code)
    assert namespace['obj'] == {'name': 'John', 'years': 3}
    assert lines == ['#p age =>  3']


def test_array_element(run):
    code = "arr = [1, 2, 3, #p 4, 5]"
    output = instrument_code(code)
    assert output.startswith('arr = [1, 2, 3,')
    assert "print('#p 4 => ', value)" in output
    assert output.endswith(', 5]')

    namespace, lines = run(code)
    assert namespace['arr'] == [1, 2, 3, 4, 5]
    assert lines == ['#p 4 =>  4']


def test_function_argument(run):
    code = "def greet(#p name):\n    return name + '!'\nresult = greet('Ada')"
    output = instrument_code(code)
    assert 'def greet(name):' in output
    assert "print('#p name => ', name)" in output
    assert "return name + '!'" in output

    namespace, lines = run(code)
    assert namespace['result'] == 'Ada!'
    assert lines == ['#p name =>  Ada']


def test_return_value(run):
    code = "def calculate_area(width, height):\n    return #p (width * height)\narea = calculate_area(3, 4)"
    output = instrument_code(code)
    assert 'def calculate_area(width, height):' in output
    assert "print('#p (width * height) => ', value)" in output

    namespace, lines = run(code)
    assert namespace['area'] == 12
    assert lines == ['#p (width * height) =>  12']


def test_conditional_expression(run):
    code = 'count = 1\nis_even = #p (7 if count == 1 else "wrong")'
    namespace, lines = run(code)
    assert namespace['is_even'] == 7
    assert lines == ["#p (7 if count == 1 else 'wrong') =>  7"]


@pytest.mark.skipif(sys.version_info < (3, 12), reason="f-string expressions cannot contain '#' before 3.12")
def test_f_string_interpolation(run):
    code = 'count = 1\nmessage = f"The count is {#p (count + 7)}"'
    namespace, lines = run(code)
    assert namespace['message'] == 'The count is 8'
    assert lines == ['#p (count + 7) =>  8']


def test_lambda_body(run):
    code = "double = lambda x: #p (x * 2 - 1)\nresult = double(3)"
    output = instrument_code(code)
    assert output.startswith('double = lambda x:')

    namespace, lines = run(code)
    assert namespace['result'] == 5
    assert lines == ['#p (x * 2 - 1) =>  5']


def test_object_method(run):
    code = 'calculator = {"add": lambda a, b: #p (a + b)}\nresult = calculator["add"](2, 3)'
    namespace, lines = run(code)
    assert namespace['result'] == 5
    assert lines == ['#p (a + b) =>  5']


def test_destructuring_assignment(run):
    code = "#p x, y = 11, 20"
    output = instrument_code(code)
    assert "print('#p x => ', x)" in output
    assert "print('#p y => ', y)" not in output

    namespace, lines = run(code)
    assert (namespace['x'], namespace['y']) == (11, 20)
    assert lines == ['#p x =>  11']


def test_spread_operator(run):
    code = "arr = [1, 2]\nnew_arr = [*#p arr, 6, 7, 8]"
    output = instrument_code(code)
    assert 'new_arr = [*' in output
    assert "print('#p arr => ', value)" in output
    assert output.endswith(', 6, 7, 8]')

    namespace, lines = run(code)
    assert namespace['new_arr'] == [1, 2, 6, 7, 8]
    assert lines == ['#p arr =>  [1, 2]']


def test_default_parameter(run):
    code = 'def welcome(#p name="12"):\n    print(f"Welcome, {name}!")\nwelcome()'
    output = instrument_code(code)
    assert "def welcome(name='12'):" in output
    assert "print('#p name => ', name)" in output

    _, lines = run(code)
    assert lines == ['#p name =>  12', 'Welcome, 12!']


def test_nested_object(run):
    code = 'user = {"details": dict(#p id=13, email="user@example.com")}'
    namespace, lines = run(code)
    assert namespace['user'] == {'details': {'id': 13, 'email': 'user@example.com'}}
    assert lines == ['#p id =>  13']


def test_map_callback(run):
    code = "numbers = [1, 2]\ndoubled = list(map(lambda n: #p (n + 1), numbers))"
    output = instrument_code(code)
    assert 'doubled = list(map(lambda n:' in output

    namespace, lines = run(code)
    assert namespace['doubled'] == [2, 3]
    assert lines == ['#p (n + 1) =>  2', '#p (n + 1) =>  3']


def test_async_function(run):
    code = (
        "import asyncio\n"
        "class Response:\n"
        "    async def json(self):\n"
        "        return {'ok': True}\n"
        "async def fetch_data():\n"
        "    response = Response()\n"
        "    return #p (await response.json())\n"
        "result = asyncio.run(fetch_data())\n"
    )
    output = instrument_code(code)
    assert 'async def fetch_data():' in output

    namespace, lines = run(code)
    assert namespace['result'] == {'ok': True}
    assert lines == ["#p (await response.json()) =>  {'ok': True}"]


def test_class_property(run):
    code = (
        "class Counter:\n"
        "    #p count = 17\n"
        "    def increment(self):\n"
        "        self.count += 1\n"
    )
    output = instrument_code(code)
    assert 'class Counter:' in output
    assert "print('#p count => ', value)" in output

    namespace, lines = run(code)
    assert namespace['Counter'].count == 17
    assert lines == ['#p count =>  17']


def test_multiple_markers_in_one_expression(run):
    code = "result = #p (1 + #p (9 * 2))"
    output = instrument_code(code)
    assert output.startswith('result =')
    assert "print('#p (9 * 2) => ', value)" in output
    assert "print('#p (1 + (9 * 2)) => ', value)" in output

    namespace, lines = run(code)
    assert namespace['result'] == 19
    assert lines == ['#p (9 * 2) =>  18', '#p (1 + (9 * 2)) =>  19']


def test_ternary_operator(run):
    code = 'is_even = True\nstatus = #p ("Even" if is_even else "Odd")'
    namespace, lines = run(code)
    assert namespace['status'] == 'Even'
    assert lines == ["#p ('Even' if is_even else 'Odd') =>  Even"]


def test_member_access_inside_helper(run):
    code = (
        "def debug(strings, *values):\n"
        "    out = ''\n"
        "    for i, s in enumerate(strings):\n"
        "        out += s + str(#p values[i] if i < len(values) else '')\n"
        "    return out\n"
        "message = debug(['Count: ', ', Sum: ', ''], 1, 2)\n"
    )
    output = instrument_code(code)
    assert 'def debug(strings, *values):' in output
    assert "print('#p values => ', value)" in output

    namespace, lines = run(code)
    assert namespace['message'] == 'Count: 1, Sum: 2'
    assert lines == ['#p values =>  (1, 2)', '#p values =>  (1, 2)']


def test_single_evaluation_of_side_effects(run):
    code = (
        "calls = []\n"
        "def tick():\n"
        "    calls.append(1)\n"
        "    return len(calls)\n"
        "result = #p (tick())\n"
    )
    namespace, lines = run(code)
    assert namespace['calls'] == [1]
    assert namespace['result'] == 1
    assert lines == ['#p (tick()) =>  1']


def test_unmarked_source_is_semantically_unchanged(run):
    code = "def add(a, b):\n    return a + b\ntotal = add(2, 3)"
    namespace, lines = run(code)
    assert namespace['total'] == 5
    assert lines == []


def test_validate_output_on_instrumented_code():
    output = instrument_code("#p count = 1\nitems = [#p count]")
    validation = validate_output(output)
    assert all(validation.values())
    assert '__debug_' not in output


def test_validate_output_flags_broken_code():
    validation = validate_output("x = (")
    assert validation['no_syntax_errors'] is False
    assert validation['has_diagnostics'] is False


def test_enclosing_label_keeps_nested_keyword_value(run):
    namespace, lines = run("r = #p (dict(#p id=13))")
    assert namespace['r'] == {'id': 13}
    assert lines == ['#p id =>  13', "#p (dict(id=13)) =>  {'id': 13}"]


def test_enclosing_label_keeps_nested_dict_value(run):
    namespace, lines = run('r = #p ({#p "age": 3})')
    assert namespace['r'] == {'age': 3}
    assert lines == ['#p age =>  3', "#p ({'age': 3}) =>  {'age': 3}"]


def test_enclosing_label_keeps_nested_walrus_value(run):
    namespace, lines = run("r = #p ((#p y := 5) + 1)")
    assert (namespace['r'], namespace['y']) == (6, 5)
    assert lines == ['#p y =>  5', '#p ((y := 5) + 1) =>  6']


def test_number_label_keeps_its_spelling(run):
    namespace, lines = run("x = #p 0x1F\ny = #p 1e5")
    assert (namespace['x'], namespace['y']) == (31, 100000.0)
    assert lines == ['#p 0x1F =>  31', '#p 1e5 =>  100000.0']
