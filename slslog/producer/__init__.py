"""Background producer that batches logs and sends them through a given client with retries."""