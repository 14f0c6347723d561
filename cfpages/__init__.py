"""cfpages — deploy static builds to Cloudflare Pages and link them to pull requests."""
