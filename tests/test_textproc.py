import json
import re
import threading

import pytest

from piccrack.textproc import (
    EmptyWordsError,
    FileWriter,
    TextAnalysis,
    analyze_words_frequency,
    new_analysis_id,
    new_analysis_id_with_suffix,
    scan_lines,
    write,
)

JOB_TEXT = """To be successful in this role you will-
    Have relevant experience and a Bachelor's diploma in Computer Science or its equivalent
    Have relevant experience as system or platform engineer with focus on cloud services
    Have experience with SQL and software development using at least 2 out of Python, Java, Kotlin, Scala, JavaScript is nice to have
    Have experience with distributed systems and Linux networking, including TCP/IP, SSH, SSL and HTTP protocols
    Possess experience with contemporary DevOps practices and CI/CD tools like Helm, Ansible, Terraform, Puppet, and Chef
    Possess experience with Observability, Performance Analytics and Security tools like Prometheus, CloudWatch, ELK, Sumologic and DataDog
    Have experience with massive data platforms (Hadoop, Spark, Kafka, etc) and design principles (Data Modeling, Streaming vs Batch processing, Distributed Messaging, etc)"""

WORDS_LINE = (
    "role senior python developer crossfunctional development team "
    "engineering experiences tomorrow work"
)


def test_generate_analysis_id():
    name = new_analysis_id()
    assert name.startswith("analysis_")
    assert re.fullmatch(r"analysis_\d{2}_\d{2}_\d{4}_\d{2}_\d{2}_\d+", name)


def test_text_analysis_id():
    assert TextAnalysis().id != ""
    assert TextAnalysis().id.startswith("analysis_")


def test_text_analysis_add():
    analysis = TextAnalysis()
    assert analysis.word_frequency == {}

    analysis.inc_word_count("test1")
    assert len(analysis.word_frequency) == 1
    assert analysis.word_frequency["test1"] == 1

    analysis.inc_word_count("test1")
    assert len(analysis.word_frequency) == 1
    assert analysis.word_frequency["test1"] == 2


def test_inc_word_count_is_thread_safe():
    analysis = TextAnalysis()

    def worker():
        for _ in range(500):
            analysis.inc_word_count("alpha")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert analysis.word_frequency["alpha"] == 4000


def test_analysis_of_none_fails():
    with pytest.raises(EmptyWordsError):
        analyze_words_frequency(None)


def test_analysis_of_words():
    words = WORDS_LINE.split(" ") + ["python", "python"]
    analysis = analyze_words_frequency(words)
    assert analysis.word_frequency["python"] == 3
    assert analysis.word_frequency["role"] == 1
    assert sum(analysis.word_frequency.values()) == len(words)


def test_analysis_dict_round_trip():
    analysis = analyze_words_frequency(["a", "b", "a"])
    data = json.loads(json.dumps(analysis.to_dict()))
    assert set(data) == {"id", "wordFrequency"}
    restored = TextAnalysis.from_dict(data)
    assert restored == analysis


def test_from_dict_without_id():
    restored = TextAnalysis.from_dict({"wordFrequency": {"x": 2}})
    assert restored.id == ""
    assert restored.word_frequency == {"x": 2}


def test_generating_analysis_id_with_suffix():
    assert "dir_" in new_analysis_id_with_suffix("dir")
    assert new_analysis_id_with_suffix("  dir ").startswith("dir_analysis_")


def test_scan_lines():
    assert len(list(scan_lines(JOB_TEXT))) == 8


def test_scan_lines_lowercases_and_trims():
    lines = list(scan_lines(JOB_TEXT))
    assert lines[1].startswith("have relevant experience")
    for line in lines:
        assert line == line.lower()
        assert line == line.strip(" ")


def test_scan_lines_many_texts():
    texts = [JOB_TEXT, "\nFirst Line\n\n  Second Line  \n", "Only"]
    combined = list(scan_lines(*texts))
    separate = [line for text in texts for line in scan_lines(text)]
    assert combined == separate
    assert "second line" in combined
    assert "only" in combined


def test_scan_lines_handles_crlf_and_empty():
    assert list(scan_lines("A\r\nB\r\n")) == ["a", "b"]
    assert list(scan_lines("")) == []


def test_file_writer(tmp_path):
    path = tmp_path / "out.txt"
    words = WORDS_LINE.encode()
    with open(path, "wb") as handle:
        written = FileWriter(handle).write(words)
    assert path.read_bytes() == words + b"\n"
    assert written == len(words) + 1


def test_write_words(tmp_path):
    path = tmp_path / "out.txt"
    words = WORDS_LINE.encode()
    with open(path, "wb") as handle:
        write(handle, words)
    assert path.read_bytes() == words


def test_write_through_file_writer(tmp_path):
    path = tmp_path / "out.txt"
    with open(path, "wb") as handle:
        writer = FileWriter(handle)
        write(writer, b"one")
        write(writer, b"two")
    assert path.read_bytes() == b"one\ntwo\n"