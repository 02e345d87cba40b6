"""HTTP API for storing and listing words and phrases."""