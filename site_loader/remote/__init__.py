"""site_loader.remote: Модели, транспорт и повторные попытки удалённого чтения."""
