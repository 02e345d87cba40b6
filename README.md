# piccrack

Split text recognised in screenshots and images into words and phrases,
store them in a database and look at how often each word appears.

`piccrack` is both a command-line tool and a small library. It also ships an
HTTP API that accepts text files and images and stores what it finds in them.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Settings are read from a YAML file:

```yaml
app:
  environment: "development"

http:
  host: "0.0.0.0"
  port: "8080"
  tls_enabled: false

database:
  user: user
  password: password
  host: localhost
  port: 5432
  name: piccrack.db
  pool:
    max_conns: 25
    min_conns: 5
    max_conn_lifetime: 1h
    max_conn_idle_time: 30m
    connect_timeout: 10s
    dialer_keep_alive: 5s
```

Anything left out of the `pool` and `http` sections falls back to the values
shown above; `app.environment` defaults to `development`.

Words and phrases are kept in an SQLite file: `database.name` is the path of
that file, or `:memory:` for a database that lives only as long as the
command runs. The `user`, `host` and `port` entries must still be present
(the configuration is rejected without them), but they only go into the
connection string that `piccrack.database.dsn` builds; no database server is
contacted.

The `words` commands read `config/development.yaml` from the current
directory. `piccrack api start` reads the file named by the `CONFIG_PATH`
environment variable, and `piccrack api healthz` reads the file given to the
`api` group with `--config` (default `./config/development.yaml`).

## Command line

```
piccrack --help
```

The `words` and `api` groups take `-v` / `--verbose` to log what they are
doing, for example `piccrack words -v rank`.

### Words

```
piccrack words [LIMIT]                  # list stored words, ordered by value
piccrack words add WORD                 # store a single word
piccrack words add many FILE            # store each distinct word of a .txt or .json file
piccrack words frequency [LIMIT]        # word counts, least frequent first (default limit 30)
piccrack words rank [LIMIT]             # words ranked by how often they appear (default limit 30)
piccrack words frequency analyze --path=./words.txt --out=./output
```

`words frequency` prints its rows only with `--verbose`. `words rank` always
prints them.

`frequency analyze` needs no database: it counts the words in a text file and
writes the result as JSON to `<out>/<analysis id>.json`, for example

```json
{
 "id": "analysis_09_11_2024_13_30_4821",
 "wordFrequency": {
  "python": 3,
  "team": 1
 }
}
```

The same JSON file can be fed back in with `piccrack words add many`.

### HTTP API

```
piccrack api start                                   # serve the API
piccrack api --config ./config/development.yaml healthz
```

`healthz` asks the server's health endpoint; when it does not answer with 200
it goes on to check that the database can be opened.

The server listens on the configured `http.host` and `http.port` and offers:

| Method | Path                    | Purpose                                         |
|--------|-------------------------|-------------------------------------------------|
| GET    | `/api/v1/healthz`       | health check                                    |
| GET    | `/api/v1/words`         | list words (`limit`, `offset` query parameters) |
| POST   | `/api/v1/words`         | store one word: `{"value": "python"}`           |
| POST   | `/api/v1/words/file`    | store every word of an uploaded text file       |
| POST   | `/api/v1/words/image`   | store the words recognised in an uploaded image |
| GET    | `/api/v1/words/batches` | words of a batch (`name` query parameter)       |
| POST   | `/api/v1/phrases`       | store the lines recognised in an uploaded image |
| GET    | `/metrics`              | request counters in the Prometheus text format  |

`limit` defaults to 1000 and `offset` to 0. Uploads are multipart forms: the
text file goes in the `file` field (up to 20 MB), images in the `image` field
(PNG or JPEG, up to 50 MB).

## Library

```python
from piccrack import imgsniff, openf, textproc

analysis = textproc.analyze_words_frequency(["red", "blue", "red"])
analysis.word_frequency          # {"red": 2, "blue": 1}

for line in textproc.scan_lines("First Line\n  Second line  "):
    print(line)                  # "first line", "second line"

with open("shot.png", "rb") as handle:
    imgsniff.is_png(handle.read())

openf.join("output", analysis.id, "json")
```

Text recognition goes through `piccrack.ocr.Client`, built around any
callable that turns image bytes into text:

```python
from piccrack import ocr, picphrase

client = ocr.Client(my_engine)   # my_engine(content: bytes) -> str
result = ocr.scan_file(client, "shot.png")
list(result.words())             # lower-cased words
[str(p) for p in picphrase.scan_at(client, "shot.png")]   # lines
```

Other modules cover reading files from a directory tree (`piccrack.pproc`),
retrying database pings (`piccrack.retry`), the stored-word queries
(`piccrack.database`) and request wrappers for logging, counting and rate
limiting (`piccrack.middleware`).

## What it does not do

- There is no built-in text recognition engine. `ocr.Client` needs one to be
  passed in, and the server started by `piccrack api start` has none, so its
  `/api/v1/words/image` and `/api/v1/phrases` endpoints answer with an error.
- There is no command that scans images from the command line; image
  scanning is available through the library only.
- TLS is not served: `http.tls_enabled` is only reported in the log.